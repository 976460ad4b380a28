"""Version information for vcluster-ops."""

__version__ = "0.1.0"
