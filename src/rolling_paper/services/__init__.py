"""Business logic services for the Rolling Paper board."""
