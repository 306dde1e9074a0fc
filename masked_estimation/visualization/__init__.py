"""
Visualization utilities for recorded estimation cycles.
"""

from .cycles import plot_log

__all__ = [
    'plot_log',
]
