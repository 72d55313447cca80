"""
Canvas Controllers
==================
Turns raw pointer and keyboard input into graph edits.

Why is this package needed?
---------------------------
1. Interaction: The state machine for selection, dragging, marquee, clipboard
   and inline editing lives here, so it can be driven without a window.
2. Hand-off: The simulation runner consumes serialized snapshots of the graph
   and never writes back into it.

Note: Only the simulation worker imports PySide6; everything else is plain Python.
"""
