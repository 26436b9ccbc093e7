"""Astralis: heuristic source-to-flowchart analyzer."""

__version__ = "1.0.0"
