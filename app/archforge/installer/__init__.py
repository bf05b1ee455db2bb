"""Installer: module planning, system setup and the wizard."""
