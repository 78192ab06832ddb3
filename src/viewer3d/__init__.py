"""Scene manager for PyVista viewports: primitives, connectors and imported assets."""
