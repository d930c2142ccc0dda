"""Circulating supply tracker for the PHA ERC-20 token."""

__version__ = "0.1.0"
