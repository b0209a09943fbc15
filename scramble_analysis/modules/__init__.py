# filename: scramble_analysis/modules/__init__.py
"""Analysis modules: leaflet classification, composition, scrambling rate and flip-flops."""
