"""
Cosmofy: aggregates space-data feeds into navigable event timelines.
"""

__version__ = "0.1.0"
