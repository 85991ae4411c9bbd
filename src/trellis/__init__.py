"""Trellis - a hierarchical task runner configured by a Python trellisfile."""

__version__ = "0.1.0"
