"""Infrastructure layer - adapters for persistence, remote APIs and observability."""
