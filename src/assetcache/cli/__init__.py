"""Command-line interface for the asset cache."""
