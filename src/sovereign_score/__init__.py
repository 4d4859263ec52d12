"""Deterministic scoring pipeline for sovereign submissions."""

__version__ = "0.1.0"
