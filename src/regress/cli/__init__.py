"""Command-line interface for regress."""
