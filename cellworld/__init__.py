"""
Cellworld Simulation

A headless world engine for multicellular organisms living on a 2-D grid.
Organisms eat, reproduce with mutation and die; the world tracks lineage and
population statistics and can be saved to and restored from snapshots.

Architecture: the world is the source of truth. Renderers and UIs are consumers.
"""

__version__ = "0.1.0"
