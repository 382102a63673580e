"""Aura Grow: simple versus compound growth of a wallet balance."""

__version__ = "0.1.0"
