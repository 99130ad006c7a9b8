"""IBT Bridge Error Handling.

This module provides the bridge's error taxonomy and the polling/retry
helpers used for idempotent chain queries.
"""

from .exceptions import (
    BridgeError,
    ChainUnavailableError,
    ConfigurationError,
    ErrorCategory,
    ErrorKind,
    ErrorSeverity,
    FinalityTimeoutError,
    InsufficientAfterRemediationError,
    InsufficientFundsError,
    InvalidTransferRequest,
    LedgerError,
    MalformedReceiptError,
    NoCoinSufficientError,
    ReadError,
    SubmissionRejectedError,
    VerificationFailedError,
    create_configuration_error,
    create_finality_timeout_error,
    describe_error,
)
from .recovery import BackoffStrategy, RetryPolicy, poll_until, retry_async

__all__ = [
    # Exceptions
    "BridgeError",
    "ErrorKind",
    "ErrorSeverity",
    "ErrorCategory",
    "ConfigurationError",
    "InvalidTransferRequest",
    "VerificationFailedError",
    "InsufficientFundsError",
    "InsufficientAfterRemediationError",
    "NoCoinSufficientError",
    "LedgerError",
    "ChainUnavailableError",
    "ReadError",
    "SubmissionRejectedError",
    "FinalityTimeoutError",
    "MalformedReceiptError",
    "create_configuration_error",
    "create_finality_timeout_error",
    "describe_error",
    # Recovery
    "RetryPolicy",
    "BackoffStrategy",
    "retry_async",
    "poll_until",
]
