"""vcluster control-plane integration - HTTP client, retry engine and API models."""

from vcluster_ops.integrations.vcluster.auth import AuthScheme, normalize_auth_header
from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.client import ApiResponse, VClusterClient
from vcluster_ops.integrations.vcluster.config import PollPolicy, VClusterConfig
from vcluster_ops.integrations.vcluster.exceptions import (
    CleanupBatchError,
    ConvergenceTimeoutError,
    ImmutableFieldError,
    MalformedIdentifierError,
    OperationCancelledError,
    RetryExhaustedError,
    VClusterAPIError,
    VClusterAuthError,
    VClusterConfigError,
    VClusterConnectionError,
    VClusterError,
    VClusterNotFoundError,
)
from vcluster_ops.integrations.vcluster.identity import RELEASE_IDENTITY, CompositeIdentity
from vcluster_ops.integrations.vcluster.operation import IdempotentRequestBuilder, Operation
from vcluster_ops.integrations.vcluster.retry import RetryExecutor, RetryPolicy
from vcluster_ops.integrations.vcluster.transport import Transport

__all__ = [
    "RELEASE_IDENTITY",
    "ApiResponse",
    "AuthScheme",
    "CancellationToken",
    "CleanupBatchError",
    "CompositeIdentity",
    "ConvergenceTimeoutError",
    "IdempotentRequestBuilder",
    "ImmutableFieldError",
    "MalformedIdentifierError",
    "Operation",
    "OperationCancelledError",
    "PollPolicy",
    "RetryExecutor",
    "RetryExhaustedError",
    "RetryPolicy",
    "Transport",
    "VClusterAPIError",
    "VClusterAuthError",
    "VClusterClient",
    "VClusterConfig",
    "VClusterConfigError",
    "VClusterConnectionError",
    "VClusterError",
    "VClusterNotFoundError",
    "normalize_auth_header",
]
