# scramble_analysis/core/plotting_style.py
"""
Defines the unified plotting style configuration for the scramble analysis.
Includes the STYLE dictionary and the setup_style() function to apply these settings.
"""

import os

import matplotlib as mpl
import matplotlib.pyplot as plt
import seaborn as sns

STYLE = {
    # Leaflet colors
    'leaflet_colors': {
        'upper': '#4682B4',  # steel blue
        'lower': '#FF8C00',  # dark orange
        'full': '#555555',   # dark grey
    },
    # Flip-flop direction colors
    'direction_colors': {
        'U->L': '#FF6B81',  # bright pink
        'L->U': '#32CD32',  # lime green
    },
    # Color cycle for lipid types
    'palette': 'tab10',
    'line_width': 2,
    'font_family': 'sans-serif',
    'font_sizes': {
        'axis_label': 14,
        'tick_label': 12,
        'annotation': 11,  # legend size
    },
    'grid': {
        'color': 'lightgrey',
        'alpha': 0.3,
        'linestyle': '-',
    },
}


def setup_style():
    """Apply the unified styling to matplotlib and seaborn"""
    sns.set_style("whitegrid", {
        'grid.color': STYLE['grid']['color'],
        'grid.alpha': STYLE['grid']['alpha'],
        'grid.linestyle': STYLE['grid']['linestyle'],
    })

    mpl.rcParams['font.family'] = STYLE['font_family']
    mpl.rcParams['axes.labelsize'] = STYLE['font_sizes']['axis_label']
    mpl.rcParams['xtick.labelsize'] = STYLE['font_sizes']['tick_label']
    mpl.rcParams['ytick.labelsize'] = STYLE['font_sizes']['tick_label']
    mpl.rcParams['legend.fontsize'] = STYLE['font_sizes']['annotation']
    mpl.rcParams['lines.linewidth'] = STYLE['line_width']
    mpl.rcParams['figure.dpi'] = 100
    mpl.rcParams['savefig.dpi'] = 150

    plt.switch_backend('agg')


def lipid_colors(lipid_types):
    """Stable color per lipid type from the style palette."""
    palette = sns.color_palette(STYLE['palette'], n_colors=max(len(lipid_types), 1))
    return {name: palette[i] for i, name in enumerate(lipid_types)}


def save_plot(fig, path, logger, dpi=150):
    """Save a figure with directory creation; always closes the figure."""
    try:
        plot_dir = os.path.dirname(path)
        if plot_dir:
            os.makedirs(plot_dir, exist_ok=True)
        fig.savefig(path, dpi=dpi, bbox_inches='tight')
        logger.info(f"Saved plot: {path}")
        return True
    except OSError as e:
        logger.error(f"Failed to save plot {path}: {e}")
        return False
    finally:
        plt.close(fig)
