"""Implementations of the traitml CLI commands."""
