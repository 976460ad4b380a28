"""Centralized CLI output utilities.

Usage:
    from vcluster_ops.cli.output import Table, state_table

    console.print(state_table(cluster, title="Cluster: prod"))
"""

from vcluster_ops.cli.output.table import Table, state_table

__all__ = ["Table", "state_table"]
