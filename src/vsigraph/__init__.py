"""
VSIGraph: VSI pseudowire topology graphs for visualization.

Turns VSI (virtual switching instance) records and their pseudowire peer
links into a deduplicated node/edge graph, recomputed whenever the dataset
or the name/state filters change.

License: MIT
"""

__version__ = "0.1.0"
