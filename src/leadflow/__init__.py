"""Leadflow: recruitment lead intake and pipeline management."""

__version__ = "0.1.0"
