"""Gophex metadata - lifecycle tracking for scaffolded projects."""

__version__ = "0.4.0"
