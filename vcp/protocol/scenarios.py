"""
Built-in proof scenarios over the DL and sub credentials.

Each scenario contributes shared setup and requirements to a ProofSession:
    revealed                 - disclose metadata of both credentials
    equalities               - SSN of DL equals SSN of sub
    range                    - birth date and validity within bounds
    accumulators             - license and account numbers are members
    accumulator-revocation   - removed member no longer verifies
    verifiable-encryption    - SSNs encrypted for an authority
"""

import logging
from typing import Dict, List, Optional, Type

from vcp.core.config import DEFAULT_ACCUMULATOR_SEQ_NUM, SESSION_NONCE

from . import scenario_data as data
from .accumulator import MembershipSetup
from .api_models import AuthorityData, DecryptRequest, value_as_text
from .correlation import DecryptMap
from .engine import EngineGateway
from .exceptions import ConsistencyViolation, ErrorCode, GatewayError, MisconfiguredScenario
from .session import (
    CredentialSpec,
    DecryptionOutcome,
    ProofSession,
    SessionOutcome,
    is_expected_decryption_failure,
    join_all,
)
from .signing import SigningMode

log = logging.getLogger(__name__)


class Scenario:
    """Base scenario: both credentials, no shared setup, no constraints."""

    name = ""

    def credentials(self) -> List[CredentialSpec]:
        return [data.dl_credential(), data.sub_credential()]

    async def shared_setup(self, session: ProofSession) -> None:
        pass

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        return DecryptMap()

    async def after_proof(self, session: ProofSession, outcome: SessionOutcome) -> SessionOutcome:
        return outcome


class RevealedScenario(Scenario):
    name = "revealed"

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        session.requirements.disclose(data.DL, *data.DL_REVEALED)
        session.requirements.disclose(data.SUB, *data.SUB_REVEALED)
        return DecryptMap()


class EqualitiesScenario(Scenario):
    name = "equalities"

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        session.requirements.require_equal(data.DL, data.DL_SSN_INDEX, data.SUB, data.SUB_SSN_INDEX)
        session.requirements.require_equal(data.SUB, data.SUB_SSN_INDEX, data.DL, data.DL_SSN_INDEX)
        return DecryptMap()


class RangeScenario(Scenario):
    name = "range"

    async def shared_setup(self, session: ProofSession) -> None:
        proving_key = await session.engine.create_range_proof_proving_key(session.rng_seed)
        # one proving key serves both credentials
        session.shared.put_opaque(data.DL_RPPK, proving_key)
        session.shared.put_opaque(data.SUB_RPPK, proving_key)
        session.shared.put_int(data.DL_RANGE_MIN, data.DL_RANGE_MIN_VALUE)
        session.shared.put_int(data.DL_RANGE_MAX, data.DL_RANGE_MAX_VALUE)
        session.shared.put_int(data.SUB_RANGE_MIN, data.SUB_RANGE_MIN_VALUE)
        session.shared.put_int(data.SUB_RANGE_MAX, data.SUB_RANGE_MAX_VALUE)

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        session.requirements.require_in_range(
            data.DL, data.DL_IN_RANGE_INDEX, data.DL_RANGE_MIN, data.DL_RANGE_MAX, data.DL_RPPK
        )
        session.requirements.require_in_range(
            data.SUB, data.SUB_IN_RANGE_INDEX, data.SUB_RANGE_MIN, data.SUB_RANGE_MAX, data.SUB_RPPK
        )
        return DecryptMap()


class AccumulatorsScenario(Scenario):
    name = "accumulators"

    # credential label -> (attribute index, holder id, accumulator seed,
    #                      proving key label, public data label, accumulator label, seq num label)
    MEMBERS = {
        data.DL: (
            data.DL_ACC_INDEX, data.DL_HOLDER_ID, data.DL_ACC_SEED,
            data.DL_MPK, data.DL_APD, data.DL_ACC, data.DL_ACC_SEQ_NUM_LABEL,
        ),
        data.SUB: (
            data.SUB_ACC_INDEX, data.SUB_HOLDER_ID, data.SUB_ACC_SEED,
            data.SUB_MPK, data.SUB_APD, data.SUB_ACC, data.SUB_ACC_SEQ_NUM_LABEL,
        ),
    }

    def __init__(self):
        self.memberships: Dict[str, MembershipSetup] = {}

    async def shared_setup(self, session: ProofSession) -> None:
        proving_key = await session.accumulators.create_membership_proving_key()
        labels = list(self.MEMBERS)
        setups = await join_all(
            *(self._setup_one(session, label, proving_key) for label in labels)
        )
        for label, setup in zip(labels, setups):
            index, _, _, mpk_label, apd_label, acc_label, seq_label = self.MEMBERS[label]
            self.memberships[label] = setup
            session.related[label].accumulator_witnesses[str(index)] = setup.witness
            session.shared.put_opaque(mpk_label, setup.membership_proving_key)
            session.shared.put_opaque(apd_label, setup.triple.accumulator_public_data)
            session.shared.put_opaque(acc_label, setup.triple.accumulator)
            session.shared.put_int(seq_label, DEFAULT_ACCUMULATOR_SEQ_NUM)

    async def _setup_one(self, session: ProofSession, label: str, proving_key: str) -> MembershipSetup:
        index, holder_id, seed, _, _, _, _ = self.MEMBERS[label]
        member = value_as_text(session.credential(label).values[index])
        return await session.accumulators.setup_membership(
            member, holder_id, accumulator_seed=seed, membership_proving_key=proving_key
        )

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        for label, (index, _, _, mpk_label, apd_label, acc_label, seq_label) in self.MEMBERS.items():
            session.requirements.require_in_accumulator(
                label, index, mpk_label, apd_label, acc_label, seq_label
            )
        return DecryptMap()


class AccumulatorRevocationScenario(AccumulatorsScenario):
    """Prove membership, remove DL's element, and expect the proof to fail."""

    name = "accumulator-revocation"
    revoked = data.DL

    async def after_proof(self, session: ProofSession, outcome: SessionOutcome) -> SessionOutcome:
        setup = self.memberships[self.revoked]
        _, _, _, _, apd_label, acc_label, _ = self.MEMBERS[self.revoked]
        triple, _ = await session.accumulators.remove_members(setup.triple, [setup.element])
        session.shared.replace_opaque(acc_label, triple.accumulator)
        session.shared.replace_opaque(apd_label, triple.accumulator_public_data)
        try:
            await session.reverify()
        except ConsistencyViolation as e:
            log.info(f"revoked_member_rejected credential={self.revoked} reason={e.reason}")
            return outcome
        except GatewayError as e:
            # only the engine refusing the proof counts; transport and unclassified failures propagate
            if e.code != ErrorCode.ENGINE_REQUEST_FAILED or e.location != "verifyProof":
                raise
            log.info(f"revoked_member_rejected credential={self.revoked} reason={e.reason}")
            return outcome
        raise ConsistencyViolation.revoked_member_verified(self.revoked)


class VerifiableEncryptionScenario(Scenario):
    name = "verifiable-encryption"

    ENCRYPTED = {data.DL: data.DL_SSN_INDEX, data.SUB: data.SUB_SSN_INDEX}

    def __init__(self):
        self.authority: Optional[AuthorityData] = None

    async def shared_setup(self, session: ProofSession) -> None:
        self.authority = await session.engine.create_authority_data(data.AUTHORITY_RNG_SEED)
        session.shared.put_opaque(data.AUTH_LABEL, self.authority.authority_public_data)

    def build_requirements(self, session: ProofSession) -> DecryptMap:
        requests: DecryptMap = DecryptMap()
        for label, index in self.ENCRYPTED.items():
            session.requirements.require_encrypted_for(label, index, data.AUTH_LABEL)
            requests.put(
                label,
                index,
                data.AUTH_LABEL,
                DecryptRequest(
                    authority_secret_data=self.authority.authority_secret_data,
                    authority_decryption_key=self.authority.authority_decryption_key,
                ),
            )
        return requests


SCENARIOS: Dict[str, Type[Scenario]] = {
    cls.name: cls
    for cls in (
        RevealedScenario,
        EqualitiesScenario,
        RangeScenario,
        AccumulatorsScenario,
        AccumulatorRevocationScenario,
        VerifiableEncryptionScenario,
    )
}


async def run_scenario(
    name: str,
    crypto_library: Optional[str] = None,
    mode: SigningMode = SigningMode.DIRECT,
    gateway: Optional[EngineGateway] = None,
    nonce: str = SESSION_NONCE,
) -> SessionOutcome:
    """Run one named scenario end to end.

    Args:
        name: Key in SCENARIOS.
        crypto_library: Library under test. Defaults to the gateway's.
        mode: DIRECT or BLIND issuance.
        gateway: Engine gateway to use. A new one is created if omitted.
        nonce: Nonce binding the proof.

    Returns:
        SessionOutcome. On the AC2C family the verifiable-encryption scenario
        finishes with DecryptionOutcome.EXPECTED_UNIMPLEMENTED.

    Raises:
        VCPError subclasses for every other failure, stage stamped.
    """
    scenario_cls = SCENARIOS.get(name)
    if scenario_cls is None:
        raise MisconfiguredScenario.invalid(
            f"unknown scenario {name!r} (choose from {', '.join(SCENARIOS)})"
        )
    if gateway is None:
        gateway = EngineGateway(crypto_library) if crypto_library else EngineGateway()
    elif crypto_library and str(getattr(crypto_library, "value", crypto_library)).upper() != gateway.crypto_library:
        raise MisconfiguredScenario.invalid(
            f"gateway is bound to {gateway.crypto_library}, not {crypto_library}"
        )

    scenario = scenario_cls()
    session = ProofSession(gateway, scenario.credentials(), mode=mode, nonce=nonce)
    log.info(
        f"scenario_start name={name} mode={SigningMode(mode).value}",
        extra={"session": session.session_id, "zkp_lib": gateway.crypto_library},
    )
    try:
        outcome = await session.run(scenario)
    except GatewayError as e:
        if not is_expected_decryption_failure(e, gateway.crypto_library):
            raise
        log.info(
            f"scenario_expected_failure name={name} reason={e.reason}",
            extra={"session": session.session_id, "zkp_lib": gateway.crypto_library},
        )
        return session.outcome(DecryptionOutcome.EXPECTED_UNIMPLEMENTED)

    outcome = await scenario.after_proof(session, outcome)
    log.info(
        f"scenario_passed name={name} decryption={outcome.decryption.value}",
        extra={"session": session.session_id, "zkp_lib": gateway.crypto_library},
    )
    return outcome
