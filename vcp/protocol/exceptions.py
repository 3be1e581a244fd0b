"""
VCP orchestration exceptions.

Three families, each carrying an error code from ErrorCode:
- GatewayError: a remote engine operation failed
- ConsistencyViolation: a protocol invariant failed after a call succeeded
- MisconfiguredScenario: a session references something never registered

The session stamps the failing stage onto the error before it propagates.
"""

from typing import Iterable, Optional

from vcp.core.config import FETCH_ERROR_REASON, UNIMPLEMENTED_MARKER, UNKNOWN_ERROR_REASON


class ErrorCode:
    """Error code registry."""
    # Engine layer
    ENGINE_REQUEST_FAILED = "ENGINE_REQUEST_FAILED"
    ENGINE_FETCH_FAILED = "ENGINE_FETCH_FAILED"
    ENGINE_UNKNOWN = "ENGINE_UNKNOWN"

    # Protocol layer
    CONSISTENCY_VIOLATION = "CONSISTENCY_VIOLATION"

    # Session layer
    SCENARIO_MISCONFIGURED = "SCENARIO_MISCONFIGURED"


class VCPError(Exception):
    """Base exception for orchestration errors."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        self.stage: Optional[str] = None
        super().__init__(message)

    @property
    def operation(self) -> Optional[str]:
        return None

    @property
    def reason(self) -> str:
        return self.message

    def describe(self) -> str:
        """Stage, operation and reason in one line for users."""
        parts = [f"stage={self.stage or '-'}"]
        parts.append(f"operation={self.operation or '-'}")
        parts.append(f"reason={self.reason}")
        return f"{self.code}: " + " ".join(parts)


class GatewayError(VCPError):
    """A remote engine operation failed.

    reason is either the engine's own message or one of the sentinels
    FetchError (transport failure) and UNKNOWN (unclassified).
    """

    def __init__(
        self,
        code: str,
        reason: str,
        location: str,
        crypto_library: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.location = location
        self.crypto_library = crypto_library
        self.detail = detail
        self._reason = reason
        super().__init__(code, f"{location} failed (zkpLib={crypto_library}): {reason}")

    @property
    def operation(self) -> str:
        return self.location

    @property
    def reason(self) -> str:
        return self._reason

    @property
    def is_unimplemented(self) -> bool:
        return UNIMPLEMENTED_MARKER in self._reason

    @classmethod
    def from_engine(
        cls, reason: str, location: str, crypto_library: Optional[str] = None
    ) -> "GatewayError":
        """Factory for a structured {reason, location} error from the engine."""
        return cls(
            code=ErrorCode.ENGINE_REQUEST_FAILED,
            reason=reason,
            location=location,
            crypto_library=crypto_library,
        )

    @classmethod
    def fetch_error(
        cls, location: str, crypto_library: Optional[str] = None, detail: Optional[str] = None
    ) -> "GatewayError":
        """Factory for transport-level failures (connect, timeout, protocol)."""
        return cls(
            code=ErrorCode.ENGINE_FETCH_FAILED,
            reason=FETCH_ERROR_REASON,
            location=location,
            crypto_library=crypto_library,
            detail=detail,
        )

    @classmethod
    def unknown(
        cls, location: str, crypto_library: Optional[str] = None, detail: Optional[str] = None
    ) -> "GatewayError":
        """Factory for failures with no structured reason.

        Used for:
        - Error responses whose body is not {reason, location}
        - Success responses that do not match the expected schema
        """
        return cls(
            code=ErrorCode.ENGINE_UNKNOWN,
            reason=UNKNOWN_ERROR_REASON,
            location=location,
            crypto_library=crypto_library,
            detail=detail,
        )


class ConsistencyViolation(VCPError):
    """A protocol-level invariant failed. Never retried."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self._operation = operation
        super().__init__(ErrorCode.CONSISTENCY_VIOLATION, message)

    @property
    def operation(self) -> Optional[str]:
        return self._operation

    @classmethod
    def witness_mismatch(cls, holder_id: str) -> "ConsistencyViolation":
        return cls(
            f"witness returned by accumulatorAddRemove for holder {holder_id!r} "
            "differs from getAccumulatorWitness",
            operation="getAccumulatorWitness",
        )

    @classmethod
    def missing_witness(cls, holder_id: str) -> "ConsistencyViolation":
        return cls(
            f"accumulatorAddRemove returned no witness for holder {holder_id!r}",
            operation="accumulatorAddRemove",
        )

    @classmethod
    def unexpected_warnings(cls, operation: str, warnings: Iterable) -> "ConsistencyViolation":
        rendered = ", ".join(str(w) for w in warnings)
        return cls(f"{operation} returned warnings: {rendered}", operation=operation)

    @classmethod
    def missing_decrypt_paths(cls, paths: Iterable) -> "ConsistencyViolation":
        rendered = ", ".join("/".join(str(p) for p in path) for path in paths)
        return cls(f"decrypt responses missing requested paths: {rendered}", operation="verifyProof")

    @classmethod
    def unexpected_decrypt_paths(cls, paths: Iterable) -> "ConsistencyViolation":
        rendered = ", ".join("/".join(str(p) for p in path) for path in paths)
        return cls(f"decrypt responses contain unrequested paths: {rendered}", operation="verifyProof")

    @classmethod
    def malformed_decrypt_tree(cls, detail: str) -> "ConsistencyViolation":
        return cls(f"malformed decrypt tree: {detail}", operation="verifyProof")

    @classmethod
    def decrypted_value_mismatch(
        cls, path: Iterable, expected: str, actual: str
    ) -> "ConsistencyViolation":
        rendered = "/".join(str(p) for p in path)
        return cls(
            f"decrypted value at {rendered} is {actual!r}, expected {expected!r}",
            operation="verifyProof",
        )

    @classmethod
    def revoked_member_verified(cls, credential_label: str) -> "ConsistencyViolation":
        return cls(
            f"proof for {credential_label!r} still verifies after its element was removed",
            operation="verifyProof",
        )

    @classmethod
    def disclosure(cls, reason: str) -> "ConsistencyViolation":
        return cls(f"disclosure check failed: {reason}", operation="createProof")


class MisconfiguredScenario(VCPError):
    """The session references a label, index or stage that does not exist."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.SCENARIO_MISCONFIGURED, message)

    @classmethod
    def unknown_credential(cls, label: str) -> "MisconfiguredScenario":
        return cls(f"unknown credential label {label!r}")

    @classmethod
    def unknown_shared_param(cls, label: str, referenced_by: Optional[str] = None) -> "MisconfiguredScenario":
        where = f" (referenced by {referenced_by})" if referenced_by else ""
        return cls(f"shared parameter {label!r} is not registered{where}")

    @classmethod
    def duplicate_label(cls, kind: str, label: str) -> "MisconfiguredScenario":
        return cls(f"{kind} label {label!r} is already registered")

    @classmethod
    def invalid_index(cls, label: str, index: int, size: int) -> "MisconfiguredScenario":
        return cls(f"attribute index {index} is out of range for {label!r} ({size} attributes)")

    @classmethod
    def invalid(cls, reason: str) -> "MisconfiguredScenario":
        return cls(reason)

    @classmethod
    def invalid_transition(cls, current: str, requested: str) -> "MisconfiguredScenario":
        return cls(f"cannot move session from {current} to {requested}")
