"""
Terminal user interface: themes, key bindings, rendering and the event loop.

Import the submodules directly; the renderer and loop need curses.
"""
