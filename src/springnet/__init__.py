"""
springnet
=========
Interactive 2D editor for mass-spring particle networks.

The package is split the same way the GUI is wired:
    model       - entities, codec, store and persistence (no widget code)
    controller  - canvas interaction, viewport transform, simulation hand-off
    view        - PySide6 widgets that forward user input to the controller
"""
