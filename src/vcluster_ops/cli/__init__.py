"""Command-line interface for vcluster-ops."""
