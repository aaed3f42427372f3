"""Multiscale peak detection for gas-chromatography detector traces."""

__all__ = [
    "io_utils",
    "preprocessing",
    "detection",
    "clustering",
    "analysis",
    "composition",
    "config",
    "plotting",
]

__version__ = "0.1.0"
