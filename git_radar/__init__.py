"""Scan GitHub repositories, score their READMEs and serve recommendations."""

__version__ = "0.1.0"
