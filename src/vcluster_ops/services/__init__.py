"""vcluster service layer - lifecycle reconcilers for each resource kind.

Reconcilers combine the retry executor, the convergence poller and the
delete verifier into create/read/update/delete for clusters, Helm
releases, secrets and orphan-cleanup batches.
"""

from vcluster_ops.services.base import BaseReconciler
from vcluster_ops.services.cleanup_reconciler import CleanupReconciler, cleanup_id
from vcluster_ops.services.cluster_reconciler import ClusterReconciler
from vcluster_ops.services.convergence import ConvergencePoller, PollOutcome, PollState
from vcluster_ops.services.release_reconciler import ReleaseReconciler
from vcluster_ops.services.secret_reconciler import SecretReconciler
from vcluster_ops.services.verification import (
    AmbiguousFailureVerifier,
    ConfirmedDeleted,
    ConfirmedPresent,
    Inconclusive,
)

__all__ = [
    "AmbiguousFailureVerifier",
    "BaseReconciler",
    "CleanupReconciler",
    "ClusterReconciler",
    "ConfirmedDeleted",
    "ConfirmedPresent",
    "ConvergencePoller",
    "Inconclusive",
    "PollOutcome",
    "PollState",
    "ReleaseReconciler",
    "SecretReconciler",
    "cleanup_id",
]
