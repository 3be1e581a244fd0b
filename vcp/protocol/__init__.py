"""VCP proof session orchestration.

This package drives the Issuer, Holder, Verifier, Authority and Revocation
Manager roles of a privacy-preserving credential exchange against a remote
cryptographic engine.

Components:
- engine: EngineGateway, the HTTP client for every engine primitive
- signing: direct and blind issuance
- accumulator: accumulator setup, membership and removal
- session: the ProofSession state machine
- scenarios: built-in scenarios and run_scenario

Usage:
    from vcp.protocol import EngineGateway, SigningMode, run_scenario

    outcome = await run_scenario("revealed", "DNC", SigningMode.BLIND)
"""

from .accumulator import AccumulatorOrchestrator, AccumulatorTriple, MembershipSetup
from .correlation import DecryptKey, DecryptMap, check_closure
from .engine import CryptoLibrary, EngineGateway
from .exceptions import (
    ConsistencyViolation,
    ErrorCode,
    GatewayError,
    MisconfiguredScenario,
    VCPError,
)
from .requirements import ProofRequirements
from .scenarios import SCENARIOS, Scenario, run_scenario
from .session import (
    CredentialSpec,
    DecryptionOutcome,
    ProofSession,
    SessionOutcome,
    SessionStage,
    is_expected_decryption_failure,
)
from .shared_params import SharedParams
from .signing import IssuedCredential, SigningMode, SigningOrchestrator, partition

__all__ = [
    # Exceptions
    "VCPError",
    "GatewayError",
    "ConsistencyViolation",
    "MisconfiguredScenario",
    "ErrorCode",
    # Engine
    "CryptoLibrary",
    "EngineGateway",
    # Issuance
    "SigningMode",
    "SigningOrchestrator",
    "IssuedCredential",
    "partition",
    # Accumulators
    "AccumulatorOrchestrator",
    "AccumulatorTriple",
    "MembershipSetup",
    # Session
    "SharedParams",
    "ProofRequirements",
    "DecryptKey",
    "DecryptMap",
    "check_closure",
    "CredentialSpec",
    "DecryptionOutcome",
    "ProofSession",
    "SessionOutcome",
    "SessionStage",
    "is_expected_decryption_failure",
    # Scenarios
    "SCENARIOS",
    "Scenario",
    "run_scenario",
]
