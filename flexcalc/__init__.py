"""Flexibility score of molecular dynamics trajectories, computed in constant memory"""

__version__ = "0.1"
