"""Trust Engine - HTTP API."""
