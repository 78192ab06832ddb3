"""
The MODEL layer contains pure data structures and scene bookkeeping.
It has NO knowledge of the GUI (Qt) or the Visualization (PyVista).
It deals with Geometry, Identity and the Scene Registry.
"""
