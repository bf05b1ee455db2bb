"""Command-line interface for archforge."""
