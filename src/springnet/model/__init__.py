"""
The MODEL layer contains pure data structures and business logic.
It has NO knowledge of the widgets or the canvas painting.
It deals with the network topology, the data file codec and I/O.
"""
