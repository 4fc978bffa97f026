"""
Readmerge: greedy consolidation of overlapping read alignments into consensus clusters.

Reads aligned to reference coordinates are merged pairwise whenever their shared
positions agree, and the merging is repeated across the whole population until
no further consolidation is possible.
"""

__version__ = "0.1.0"

from .core import main as readmerge_main
from .merge import merge_two, merge_clusters

__all__ = ["readmerge_main", "merge_two", "merge_clusters", "__version__"]
