"""Implementations of the browser and pseudo-terminal capabilities."""
