"""
Plotting utilities for the decomposition verification campaign.
Swing/twist angle distributions and worst-case property errors.
"""

import os

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving
import matplotlib.pyplot as plt
import pandas as pd

from core.constants import RAD2DEG


# Colorblind-friendly palette
COLORS = {
    'swing': '#2E86AB',
    'twist': '#F18F01',
    'pass': '#2E7D32',
    'fail': '#C73E1D',
}

ERROR_COLUMNS = [
    ('norm_error_p', '| |p| - 1 |'),
    ('norm_error_q', '| |q| - 1 |'),
    ('reconstruction_error', 'r vs p*q'),
    ('fixed_axis_error', 'q e_q vs e_q'),
    ('orthogonality_error', 'e_p . e_q'),
]


def plot_angle_summary(results: pd.DataFrame, filepath: str,
                       tolerances=None, dpi: int = 150) -> str:
    """Save a two-panel summary of a verification run.

    Left: histogram of swing (theta_p) and twist (theta_q) angles in degrees.
    Right: worst error per property on a log scale, with tolerance markers
    when tolerances are given.

    Parameters
    ----------
    results : pd.DataFrame
        VerificationHarness.results.
    filepath : str
        Output image path. Parent directories are created.
    tolerances : Tolerances, optional
        Thresholds drawn next to each worst error.
    dpi : int
        Output resolution.

    Returns
    -------
    str
        The path written.
    """
    fig, (ax_angle, ax_err) = plt.subplots(1, 2, figsize=(12, 5))

    bins = np.linspace(0.0, 180.0, 37)
    ax_angle.hist(results['theta_p'] * RAD2DEG, bins=bins, alpha=0.7,
                  color=COLORS['swing'], label='swing $\\theta_p$')
    ax_angle.hist(results['theta_q'] * RAD2DEG, bins=bins, alpha=0.7,
                  color=COLORS['twist'], label='twist $\\theta_q$')
    ax_angle.set_xlabel('Angle [deg]')
    ax_angle.set_ylabel('Trials')
    ax_angle.set_title('Swing / twist angles')
    ax_angle.legend()

    names = [label for _, label in ERROR_COLUMNS]
    worst = [max(float(results[col].max()), 1e-18) for col, _ in ERROR_COLUMNS]
    colors = [COLORS['pass'] if bool(results['passed'].all()) else COLORS['fail']] * len(worst)
    y = np.arange(len(names))
    ax_err.barh(y, worst, color=colors)
    if tolerances is not None:
        limits = [tolerances.unit_norm, tolerances.unit_norm,
                  tolerances.reconstruction, tolerances.fixed_axis,
                  tolerances.orthogonality]
        ax_err.scatter(limits, y, marker='|', s=300, color='k', label='tolerance')
        ax_err.legend()
    ax_err.set_xscale('log')
    ax_err.set_yticks(y)
    ax_err.set_yticklabels(names)
    ax_err.set_xlabel('Worst error')
    ax_err.set_title(f'Property errors ({len(results)} trials)')

    fig.tight_layout()
    parent = os.path.dirname(filepath)
    if parent:
        os.makedirs(parent, exist_ok=True)
    fig.savefig(filepath, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return filepath
