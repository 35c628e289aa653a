"""Rolling Paper: a small group message board with live updates."""

__version__ = "0.1.0"
