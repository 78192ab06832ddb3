"""
The VIEW layer: PySide6 widgets and the PyVista engine adapter.
"""
