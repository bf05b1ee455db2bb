"""archforge - Arch Linux provisioning, repair and VM test tooling."""

__version__ = "0.3.0"
