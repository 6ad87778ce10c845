"""Command-line interface for vault filters (requires the `cli` extra)."""
