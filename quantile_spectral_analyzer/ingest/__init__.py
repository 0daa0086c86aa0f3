"""Ingest package - sensor-log readers.

This package handles:
- Reading per-class sensor-log files (text or binary sample streams)
- Skipping the file header and keeping the sample field of each record
- Folding the samples into series_length x n_series matrices
- Standardising each series to zero mean and unit variance

Key classes:
- SensorLogReader: Reads one class file into a SeriesMatrix
- SensorReaderConfig: Header size, binary dtype, text suffixes, standardisation
"""

from .readers_sensor import SensorLogReader, SensorReaderConfig, load_series_matrix

__all__ = [
    "SensorLogReader",
    "SensorReaderConfig",
    "load_series_matrix",
]
