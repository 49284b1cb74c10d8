"""HTTP API for the church registry."""
