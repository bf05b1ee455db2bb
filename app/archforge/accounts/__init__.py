"""User account provisioning."""
