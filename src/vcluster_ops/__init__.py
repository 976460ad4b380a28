"""vcluster-ops - resilient lifecycle operations against the vcluster control-plane API."""

from vcluster_ops.__version__ import __version__

__all__ = ["__version__"]
