"""Repair tool for broken post-install states."""
