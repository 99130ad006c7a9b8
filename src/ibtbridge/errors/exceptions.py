"""Exception hierarchy for the IBT bridge.

Every chain-facing failure is re-classified into one of these types at the
ledger adapter boundary, so the orchestrator and its callers only ever see a
stable ``ErrorKind`` plus a human-readable detail string.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Stable, caller-facing error kinds."""

    CONFIGURATION_ERROR = "configuration_error"
    INVALID_REQUEST = "invalid_request"
    VERIFICATION_FAILED = "verification_failed"
    INSUFFICIENT_AFTER_REMEDIATION = "insufficient_after_remediation"
    NO_COIN_SUFFICIENT = "no_coin_sufficient"
    SUBMISSION_REJECTED = "submission_rejected"
    FINALITY_TIMEOUT = "finality_timeout"
    MALFORMED_RECEIPT = "malformed_receipt"
    DESTINATION_OPERATION_FAILED = "destination_operation_failed"
    CHAIN_UNAVAILABLE = "chain_unavailable"


class ErrorSeverity(Enum):
    """How loudly an error should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Coarse grouping used in logs and CLI output."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    VERIFICATION = "verification"
    FUNDS = "funds"
    NETWORK = "network"
    TRANSACTION = "transaction"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    SYSTEM = "system"


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class BridgeError(Exception):
    """Base exception for all bridge errors.

    Subclasses pin ``kind``, ``category`` and ``severity`` as class
    attributes and list their own serializable attributes in ``details``.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION_ERROR
    category: ErrorCategory = ErrorCategory.SYSTEM
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False
    details: tuple = ()

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        cause: Optional[BaseException] = None,
        error_code: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.chain = chain
        self.cause = cause
        self.error_code = error_code or self.kind.name
        if retryable is not None:
            self.retryable = retryable
        self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": type(self).__name__,
            "kind": self.kind.value,
            "message": self.message,
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "chain": self.chain,
            "retryable": self.retryable,
            "cause": _text(self.cause),
            "timestamp": self.timestamp,
        }
        for name in self.details:
            data[name] = getattr(self, name)
        return data

    def __str__(self) -> str:
        text = f"{type(self).__name__}: {self.message} | Code: {self.error_code}"
        if self.chain:
            text += f" | Chain: {self.chain}"
        if self.severity is not ErrorSeverity.MEDIUM:
            text += f" | Severity: {self.severity.value}"
        if self.retryable:
            text += " | Retryable: Yes"
        return text


class ConfigurationError(BridgeError):
    """Missing or invalid bridge identifiers. Fatal, never retried."""

    kind = ErrorKind.CONFIGURATION_ERROR
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.HIGH
    details = ("config_key", "config_value")

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["config_value"] = _text(self.config_value)
        return data


class InvalidTransferRequest(BridgeError):
    """Transfer request rejected before any state change."""

    kind = ErrorKind.INVALID_REQUEST
    category = ErrorCategory.VALIDATION
    details = ("field",)

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["value"] = _text(self.value)
        return data


class VerificationFailedError(BridgeError):
    """A bridge resource is absent or unreachable on one chain."""

    kind = ErrorKind.VERIFICATION_FAILED
    category = ErrorCategory.VERIFICATION
    severity = ErrorSeverity.HIGH


class InsufficientFundsError(BridgeError):
    """User-actionable shortage of funds. Not retried automatically."""

    category = ErrorCategory.FUNDS
    details = ("required", "available")

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.required = required
        self.available = available


class InsufficientAfterRemediationError(InsufficientFundsError):
    """Account balance still short after the single remediation mint."""

    kind = ErrorKind.INSUFFICIENT_AFTER_REMEDIATION


class NoCoinSufficientError(InsufficientFundsError):
    """No single spendable unit covers the required amount."""

    kind = ErrorKind.NO_COIN_SUFFICIENT
    details = InsufficientFundsError.details + ("unit_count",)

    def __init__(self, message: str, unit_count: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.unit_count = unit_count


class LedgerError(BridgeError):
    """Failure reported by a ledger adapter."""

    category = ErrorCategory.NETWORK


class ChainUnavailableError(LedgerError):
    """The chain endpoint could not be reached."""

    kind = ErrorKind.CHAIN_UNAVAILABLE
    retryable = True
    details = ("endpoint",)

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint


class ReadError(LedgerError):
    """A read-only query returned an unusable answer."""

    kind = ErrorKind.CHAIN_UNAVAILABLE


class SubmissionRejectedError(LedgerError):
    """The chain's execution rules rejected the operation. Terminal."""

    kind = ErrorKind.SUBMISSION_REJECTED
    category = ErrorCategory.TRANSACTION
    details = ("transaction_id",)

    def __init__(self, message: str, transaction_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.transaction_id = transaction_id


class FinalityTimeoutError(LedgerError):
    """Gave up waiting for finality. The true outcome is unknown."""

    kind = ErrorKind.FINALITY_TIMEOUT
    category = ErrorCategory.TIMEOUT
    details = ("timeout_duration",)

    def __init__(
        self,
        message: str,
        handle: Optional[Any] = None,
        timeout_duration: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.handle = handle
        self.timeout_duration = timeout_duration

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["transaction_id"] = getattr(self.handle, "transaction_id", None)
        return data


class MalformedReceiptError(BridgeError):
    """Cross-chain payload is inconsistent. Indicates a protocol-level bug."""

    kind = ErrorKind.MALFORMED_RECEIPT
    category = ErrorCategory.PROTOCOL
    severity = ErrorSeverity.CRITICAL
    details = ("field",)

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


# Chain messages that deserve a friendlier explanation for the user.
_FRIENDLY_MESSAGES = {
    "execution reverted": "Transaction failed. Please check your token balance and approvals.",
    "missing transaction sender": "Failed to prepare Sui transaction. Please ensure your Sui wallet is properly connected.",
    "insufficientcoinbalance": "Not enough coin balance to execute the transaction.",
    "insufficientgas": "Not enough gas to execute the transaction.",
}


def describe_error(error: Exception) -> str:
    """Human-readable detail for an error, translating common chain messages."""
    text = error.message if isinstance(error, BridgeError) else str(error)
    lowered = text.lower()
    for needle, friendly in _FRIENDLY_MESSAGES.items():
        if needle in lowered:
            return f"{friendly} ({text})"
    return text


def create_configuration_error(
    config_key: str, config_value: Any = None, message: Optional[str] = None
) -> ConfigurationError:
    """Create a configuration error."""
    if message is None:
        if config_value in (None, ""):
            message = f"Missing required setting '{config_key}'"
        else:
            message = f"Invalid value for setting '{config_key}': {config_value!r}"

    return ConfigurationError(
        message=message, config_key=config_key, config_value=config_value
    )


def create_finality_timeout_error(
    chain: str, handle: Any, timeout_duration: float, message: Optional[str] = None
) -> FinalityTimeoutError:
    """Create a finality timeout error."""
    if message is None:
        tx_id = getattr(handle, "transaction_id", handle)
        message = (
            f"Timed out after {timeout_duration} seconds awaiting finality of "
            f"{tx_id} on {chain}; outcome unknown, re-query before retrying"
        )

    return FinalityTimeoutError(
        message=message,
        chain=chain,
        handle=handle,
        timeout_duration=timeout_duration,
    )
