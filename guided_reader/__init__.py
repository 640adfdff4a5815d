"""Guided-reading companion: synchronized read-along audio and a timed vocabulary cycle."""

__version__ = "0.1.0"
