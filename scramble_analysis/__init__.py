# filename: scramble_analysis/__init__.py
"""
Scramble Analysis

Leaflet composition, scrambling rate and flip-flop analysis of lipid
membranes from molecular dynamics simulations.
"""

from .core import __version__
