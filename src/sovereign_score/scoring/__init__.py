"""Scoring core: atomic scorer, BridgeSpec validation, precision coupling."""
