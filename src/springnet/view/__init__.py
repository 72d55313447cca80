"""
The VIEW layer holds the PySide6 widgets.
Widgets read from the GraphStore and forward input to the InteractionEngine.
"""
