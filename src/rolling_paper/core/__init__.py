"""Core configuration, errors and primitives for Rolling Paper."""
