"""
The CONTROLLER layer owns every mutation of the scene.
It talks to the 3D engine only through the RenderEngine protocol.
Only 'workers' imports Qt (for its background thread).
"""
