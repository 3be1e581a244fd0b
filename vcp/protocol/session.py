"""
Proof session orchestration.

One ProofSession owns one Issuer/Holder/Verifier/Authority interaction:

    INIT -> ISSUANCE -> SHARED_SETUP -> REQUIREMENT_BUILD -> PROOF_CREATE
         -> PROOF_VERIFY -> (DECRYPT_VERIFY | DONE)

DECRYPT_VERIFY is entered only when verification returned decrypt responses.
Every failure propagates with the failing stage stamped onto the error; the
session never recovers from a failed stage.
"""

import asyncio
import json
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from vcp.core.config import (
    DECRYPTION_UNSUPPORTED_LIBRARIES,
    DEFAULT_RNG_SEED,
    SESSION_NONCE,
    VERIFY_DECRYPTION_OPERATION,
)

from .accumulator import AccumulatorOrchestrator
from .api_models import (
    ClaimType,
    DataValue,
    DecryptRequest,
    DecryptResponse,
    SignatureAndRelatedData,
    WarningsAndDataForVerifier,
    WarningsAndDecryptResponses,
    plain_value,
    value_as_text,
)
from .correlation import DecryptMap, check_closure
from .engine import EngineGateway
from .exceptions import ConsistencyViolation, GatewayError, MisconfiguredScenario, VCPError
from .requirements import ProofRequirements
from .shared_params import SharedParams
from .signing import IssuedCredential, SigningMode, SigningOrchestrator

log = logging.getLogger(__name__)


class SessionStage(str, Enum):
    INIT = "INIT"
    ISSUANCE = "ISSUANCE"
    SHARED_SETUP = "SHARED_SETUP"
    REQUIREMENT_BUILD = "REQUIREMENT_BUILD"
    PROOF_CREATE = "PROOF_CREATE"
    PROOF_VERIFY = "PROOF_VERIFY"
    DECRYPT_VERIFY = "DECRYPT_VERIFY"
    DONE = "DONE"


# DONE -> PROOF_VERIFY re-checks a stored proof against updated shared params
_TRANSITIONS: Dict[SessionStage, Tuple[SessionStage, ...]] = {
    SessionStage.INIT: (SessionStage.ISSUANCE,),
    SessionStage.ISSUANCE: (SessionStage.SHARED_SETUP,),
    SessionStage.SHARED_SETUP: (SessionStage.REQUIREMENT_BUILD,),
    SessionStage.REQUIREMENT_BUILD: (SessionStage.PROOF_CREATE,),
    SessionStage.PROOF_CREATE: (SessionStage.PROOF_VERIFY,),
    SessionStage.PROOF_VERIFY: (SessionStage.DECRYPT_VERIFY, SessionStage.DONE),
    SessionStage.DECRYPT_VERIFY: (SessionStage.DONE,),
    SessionStage.DONE: (SessionStage.PROOF_VERIFY,),
}


class DecryptionOutcome(str, Enum):
    NOT_REQUESTED = "NOT_REQUESTED"
    VERIFIED = "VERIFIED"
    EXPECTED_UNIMPLEMENTED = "EXPECTED_UNIMPLEMENTED"


@dataclass(frozen=True)
class CredentialSpec:
    """What the Issuer signs for one credential label."""
    label: str
    signer_label: str
    claim_types: Tuple[ClaimType, ...]
    values: Tuple[DataValue, ...]
    blinded_indices: Tuple[int, ...] = ()
    signer_rng_seed: int = DEFAULT_RNG_SEED


@dataclass
class SessionOutcome:
    crypto_library: str
    mode: SigningMode
    proof: WarningsAndDataForVerifier
    verification: WarningsAndDecryptResponses
    decrypt_responses: DecryptMap
    decryption: DecryptionOutcome
    stages: List[SessionStage] = field(default_factory=list)

    @property
    def revealed(self) -> Dict[str, Dict[int, object]]:
        """Credential label -> attribute index -> plain revealed value."""
        return {
            label: {int(idx): plain_value(v) for idx, v in shown.items()}
            for label, shown in self.proof.data_for_verifier.revealed_idxs_and_vals.items()
        }


async def join_all(*aws) -> List:
    """Await every coroutine to completion, then raise the first failure."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def is_expected_decryption_failure(error: Exception, crypto_library: str) -> bool:
    """True only for the AC2C family's documented verifyDecryption gap."""
    return (
        isinstance(error, GatewayError)
        and crypto_library in DECRYPTION_UNSUPPORTED_LIBRARIES
        and error.location == VERIFY_DECRYPTION_OPERATION
        and error.is_unimplemented
    )


def authority_decryption_keys(requests: DecryptMap) -> Dict[str, str]:
    """One JSON-encoded decryption key per distinct authority label."""
    keys: Dict[str, str] = {}
    for key, request in requests.items():
        encoded = json.dumps(request.authority_decryption_key)
        if keys.setdefault(key.authority_label, encoded) != encoded:
            raise MisconfiguredScenario.invalid(
                f"authority {key.authority_label!r} has conflicting decryption keys"
            )
    return keys


class ProofSession:
    """Sequences issuance, proof creation, verification and decryption."""

    def __init__(
        self,
        engine: EngineGateway,
        credentials: Sequence[CredentialSpec],
        mode: SigningMode = SigningMode.DIRECT,
        nonce: str = SESSION_NONCE,
        rng_seed: int = DEFAULT_RNG_SEED,
    ):
        self.engine = engine
        self.mode = SigningMode(mode)
        self.nonce = nonce
        self.rng_seed = rng_seed
        self.session_id = uuid.uuid4().hex[:8]
        self.credentials: Dict[str, CredentialSpec] = {}
        for spec in credentials:
            if spec.label in self.credentials:
                raise MisconfiguredScenario.duplicate_label("credential", spec.label)
            self.credentials[spec.label] = spec

        self.signing = SigningOrchestrator(engine, rng_seed)
        self.accumulators = AccumulatorOrchestrator(engine, rng_seed)
        self.shared = SharedParams()
        self.requirements = ProofRequirements()

        self.stage = SessionStage.INIT
        self.history: List[SessionStage] = [SessionStage.INIT]
        self.issued: Dict[str, IssuedCredential] = {}
        self.related: Dict[str, SignatureAndRelatedData] = {}
        self.decrypt_requests: DecryptMap = DecryptMap()
        self.decrypt_responses: DecryptMap = DecryptMap()
        self.proof_result: Optional[WarningsAndDataForVerifier] = None
        self.verification: Optional[WarningsAndDecryptResponses] = None

    @property
    def crypto_library(self) -> str:
        return self.engine.crypto_library

    # -------------------------------------------------------------------------
    # Stage bookkeeping
    # -------------------------------------------------------------------------

    def _extra(self, stage: SessionStage) -> Dict[str, str]:
        return {"session": self.session_id, "stage": stage.value, "zkp_lib": self.crypto_library}

    def _advance(self, stage: SessionStage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise MisconfiguredScenario.invalid_transition(self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)
        log.info(f"session_stage {stage.value}", extra=self._extra(stage))

    @contextmanager
    def _enter(self, stage: SessionStage) -> Iterator[None]:
        self._advance(stage)
        try:
            yield
        except VCPError as e:
            if e.stage is None:
                e.stage = stage.value
            log.error(f"session_failed {e.describe()}", extra=self._extra(stage))
            raise

    def credential(self, label: str) -> CredentialSpec:
        try:
            return self.credentials[label]
        except KeyError:
            raise MisconfiguredScenario.unknown_credential(label)

    def attribute_counts(self) -> Dict[str, int]:
        return {label: len(spec.values) for label, spec in self.credentials.items()}

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def issue(self) -> Dict[str, IssuedCredential]:
        """ISSUANCE: sign every credential, concurrently, and join them all."""
        with self._enter(SessionStage.ISSUANCE):
            specs = list(self.credentials.values())
            results = await join_all(
                *(
                    self.signing.produce_signature(
                        self.mode,
                        spec.claim_types,
                        spec.blinded_indices,
                        spec.values,
                        signer_rng_seed=spec.signer_rng_seed,
                    )
                    for spec in specs
                )
            )
            for spec, issued in zip(specs, results):
                self.issued[spec.label] = issued
                self.related[spec.label] = issued.related_data()
        return self.issued

    def register_signers(self) -> None:
        """Publish signer public data and open one requirement descriptor each."""
        for label, spec in self.credentials.items():
            issued = self.issued[label]
            self.shared.put_document(spec.signer_label, issued.signer_data.signer_public_data)
            self.requirements.add_credential(label, spec.signer_label)

    async def run(self, scenario) -> SessionOutcome:
        """Run the full protocol with a scenario supplying setup and requirements.

        The scenario provides two hooks:
            async shared_setup(session): extra shared parameters and holder data
            build_requirements(session) -> DecryptMap: constraints + decrypt requests
        """
        await self.issue()
        with self._enter(SessionStage.SHARED_SETUP):
            self.register_signers()
            await scenario.shared_setup(self)
        with self._enter(SessionStage.REQUIREMENT_BUILD):
            requests = scenario.build_requirements(self)
            if requests is None:
                requests = DecryptMap()
            self.validate(requests)
        return await self.prove(requests)

    async def prove(self, decrypt_requests: Optional[DecryptMap] = None) -> SessionOutcome:
        """PROOF_CREATE, PROOF_VERIFY and, if needed, DECRYPT_VERIFY."""
        requests = decrypt_requests if decrypt_requests is not None else DecryptMap()

        with self._enter(SessionStage.PROOF_CREATE):
            self.validate(requests)
            self.decrypt_requests = requests
            self.proof_result = await self.engine.create_proof(
                self.requirements.as_dict(),
                self.shared.as_dict(),
                {label: self.related[label] for label in self.requirements},
                self.nonce,
            )
            if self.proof_result.warnings:
                raise ConsistencyViolation.unexpected_warnings("createProof", self.proof_result.warnings)
            self._check_disclosed()

        with self._enter(SessionStage.PROOF_VERIFY):
            self.verification = await self.engine.verify_proof(
                self.requirements.as_dict(),
                self.shared.as_dict(),
                self.proof_result.data_for_verifier,
                requests.to_nested(),
                self.nonce,
            )
            if self.verification.warnings:
                raise ConsistencyViolation.unexpected_warnings("verifyProof", self.verification.warnings)
            self.decrypt_responses = DecryptMap.from_nested(self.verification.decrypt_responses)
            check_closure(requests, self.decrypt_responses)
            self._check_decryption()

        if not self.decrypt_responses:
            self._advance(SessionStage.DONE)
            return self.outcome(DecryptionOutcome.NOT_REQUESTED)

        with self._enter(SessionStage.DECRYPT_VERIFY):
            warnings = await self.engine.verify_decryption(
                self.requirements.as_dict(),
                self.shared.as_dict(),
                self.proof_result.data_for_verifier.proof,
                authority_decryption_keys(requests),
                self.decrypt_responses.to_nested(),
                self.nonce,
            )
            if warnings:
                raise ConsistencyViolation.unexpected_warnings("verifyDecryption", warnings)
        self._advance(SessionStage.DONE)
        return self.outcome(DecryptionOutcome.VERIFIED)

    async def reverify(self) -> WarningsAndDecryptResponses:
        """Verify the stored proof again against the current shared parameters.

        Used after the Revocation Manager changes an accumulator: a proof made
        against the old value must no longer verify.
        """
        if self.proof_result is None:
            raise MisconfiguredScenario.invalid_transition(self.stage.value, SessionStage.PROOF_VERIFY.value)
        with self._enter(SessionStage.PROOF_VERIFY):
            self.requirements.validate(self.shared, self.attribute_counts())
            result = await self.engine.verify_proof(
                self.requirements.as_dict(),
                self.shared.as_dict(),
                self.proof_result.data_for_verifier,
                {},
                self.nonce,
            )
            if result.warnings:
                raise ConsistencyViolation.unexpected_warnings("verifyProof", result.warnings)
        self._advance(SessionStage.DONE)
        return result

    def outcome(self, decryption: DecryptionOutcome) -> SessionOutcome:
        return SessionOutcome(
            crypto_library=self.crypto_library,
            mode=self.mode,
            proof=self.proof_result,
            verification=self.verification,
            decrypt_responses=self.decrypt_responses,
            decryption=decryption,
            stages=list(self.history),
        )

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def validate(self, requests: DecryptMap) -> None:
        """Check every label, equality target and index before calling the engine."""
        self.requirements.validate(self.shared, self.attribute_counts())
        self._validate_decrypt_requests(requests)

    def _validate_decrypt_requests(self, requests: DecryptMap) -> None:
        counts = self.attribute_counts()
        for key, request in requests.items():
            if key.credential_label not in self.requirements:
                raise MisconfiguredScenario.unknown_credential(key.credential_label)
            size = counts[key.credential_label]
            if not 0 <= key.attribute_index < size:
                raise MisconfiguredScenario.invalid_index(key.credential_label, key.attribute_index, size)
            if key.authority_label not in self.shared:
                raise MisconfiguredScenario.unknown_shared_param(key.authority_label, "decrypt requests")
            if not isinstance(request, DecryptRequest):
                raise MisconfiguredScenario.invalid(f"decrypt request at {key.as_path()} is not a DecryptRequest")

    def _check_disclosed(self) -> None:
        revealed = self.proof_result.data_for_verifier.revealed_idxs_and_vals
        for label in self.requirements:
            if not self.requirements[label].disclosed and revealed.get(label):
                raise ConsistencyViolation.disclosure(
                    f"{label} declared no disclosures but revealed indices {sorted(revealed[label])}"
                )
        if self.requirements.has_disclosures() and not any(revealed.get(label) for label in self.requirements):
            raise ConsistencyViolation.disclosure("disclosures were declared but nothing was revealed")

        for label, shown in revealed.items():
            if label not in self.issued:
                raise ConsistencyViolation.disclosure(f"revealed values for unknown credential {label!r}")
            values = self.issued[label].values
            for index, value in shown.items():
                try:
                    position = int(index)
                except (TypeError, ValueError):
                    raise ConsistencyViolation.disclosure(f"{label} revealed non-integer index {index!r}")
                if not 0 <= position < len(values) or values[position] != value:
                    raise ConsistencyViolation.disclosure(
                        f"{label}[{index}] revealed {plain_value(value)!r} which was never issued"
                    )

    def _check_decryption(self) -> None:
        for key in self.decrypt_requests:
            response: DecryptResponse = self.decrypt_responses[key]
            expected = value_as_text(self.issued[key.credential_label].values[key.attribute_index])
            if response.value != expected:
                raise ConsistencyViolation.decrypted_value_mismatch(key.as_path(), expected, response.value)
