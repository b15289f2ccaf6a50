"""Read-only HTTP API over the circle engine results."""
