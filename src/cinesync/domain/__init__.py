"""Domain layer for CineSync."""
