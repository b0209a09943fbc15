# filename: scramble_analysis/modules/flipflops/__init__.py
"""
Flip-Flop Analysis Package

Counts lipid transitions between leaflets with a spatial and temporal
hysteresis, and plots the counts per lipid type.
"""

from .tracker import FlipFlopTracker, FlipFlopEvent, update_counters
from .computation import run_flipflop_analysis
from .visualization import generate_flipflop_plots

__all__ = [
    'FlipFlopTracker',
    'FlipFlopEvent',
    'update_counters',
    'run_flipflop_analysis',
    'generate_flipflop_plots'
]
