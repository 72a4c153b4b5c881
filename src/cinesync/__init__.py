"""CineSync - movie/TV tracking with remote account reconciliation."""

__version__ = "0.1.0"
