"""Command-line interface for traitml."""
