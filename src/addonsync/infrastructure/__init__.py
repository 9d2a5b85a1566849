"""Infrastructure layer - HTTP adapters and observability."""
