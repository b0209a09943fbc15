# filename: scramble_analysis/core/__init__.py
"""
Core utilities shared by all scramble analysis modules: configuration, logging,
the results database, geometry helpers and lipid composition resolution.
"""

__version__ = "1.0.0"
