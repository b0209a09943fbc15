# filename: scramble_analysis/modules/rate/__init__.py
"""
Scrambling Rate Package

Percentage of lipids that left the leaflet they occupied at the start of a trajectory.
"""

from .tracker import ScramblingRateTracker
from .computation import run_rate_analysis
from .visualization import generate_rate_plots

__all__ = [
    'ScramblingRateTracker',
    'run_rate_analysis',
    'generate_rate_plots'
]
