"""Craftopia notification center client."""

__version__ = "0.1.0"
