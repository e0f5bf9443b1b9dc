"""
Drift plots for backend comparison reports.
"""

import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .simulation import DriftReport

logger = logging.getLogger(__name__)

# Keeps zero errors visible on the log axis
_FLOOR = 1e-18


def plot_drift(report: DriftReport, output_path: str) -> None:
    """
    Plot relative camera position error per tick for every backend.

    Args:
        report: Drift comparison report
        output_path: Image file to write (format from extension)
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    for name, history in report.histories.items():
        ticks = np.arange(1, len(history.position_error) + 1)
        ax.semilogy(ticks, np.maximum(history.position_error, _FLOOR), label=name)

    ax.axhline(report.threshold, color='red', linestyle='--', label='threshold')
    ax.set_xlabel('Tick')
    ax.set_ylabel('Relative camera position error')
    ax.set_title(f'Camera drift tracking {report.body_id} ({report.ticks} ticks)')
    ax.grid(True, which='both', alpha=0.3)
    ax.legend()

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)

    logger.info(f"Drift plot saved to {output_path}")
