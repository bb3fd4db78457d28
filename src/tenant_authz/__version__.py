"""Version information for tenant-authz."""

__version__ = "0.1.0"
