"""
Recording of estimation cycles to CSV.
"""

from .csv_log import CycleSink, CsvLogSink, load_log

__all__ = [
    'CycleSink',
    'CsvLogSink',
    'load_log',
]
