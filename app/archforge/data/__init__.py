"""Bundled data files for archforge."""
