"""Meteobet: virtual-coin weather betting with automatic settlement."""

__version__ = "0.1.0"
__author__ = "Meteobet Team"

__all__ = ["__version__", "__author__"]
