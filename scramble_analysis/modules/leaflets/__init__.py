# filename: scramble_analysis/modules/leaflets/__init__.py
"""
Leaflet classification primitives shared by the composition, rate and flip-flop analyses.
"""

from .classification import (
    Zone, signed_distances, classify_zones, assign_leaflets, count_leaflets
)

__all__ = [
    'Zone',
    'signed_distances',
    'classify_zones',
    'assign_leaflets',
    'count_leaflets',
]
