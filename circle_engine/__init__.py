"""
Circle Engine

Batch pipeline that scores crypto-social accounts, selects the Global Inner
Circle, builds per-project inner circles and derives competitor similarity.
"""

__version__ = "0.1.0"
