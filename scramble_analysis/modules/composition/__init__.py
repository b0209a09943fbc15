# filename: scramble_analysis/modules/composition/__init__.py
"""
Leaflet Composition Package

Counts lipids of each type in the upper and lower leaflet of a structure or
along a trajectory, and plots the result.
"""

from .computation import run_composition_analysis
from .visualization import generate_composition_plots

__all__ = [
    'run_composition_analysis',
    'generate_composition_plots'
]
