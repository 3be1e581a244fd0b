"""Accumulator orchestration for membership proofs.

The accumulator value changes on every add/remove. Witnesses are only valid
against the value they were issued for, so every operation returns the new
triple and callers must use it for the next lookup.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Sequence, Tuple

from vcp.core.config import DEFAULT_RNG_SEED

from .api_models import AccumulatorData
from .engine import EngineGateway
from .exceptions import ConsistencyViolation

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccumulatorTriple:
    """Accumulator data (authority-held), its public part, and current value."""
    accumulator_data: AccumulatorData
    accumulator: str

    @property
    def accumulator_public_data(self) -> str:
        return self.accumulator_data.accumulator_public_data


@dataclass
class MembershipSetup:
    """Result of creating an accumulator holding one member."""
    membership_proving_key: str
    triple: AccumulatorTriple
    holder_id: str
    element: str
    witness: str
    witness_update_info: str


class AccumulatorOrchestrator:
    """Drives the Revocation Manager side through the engine."""

    def __init__(self, engine: EngineGateway, rng_seed: int = DEFAULT_RNG_SEED):
        self.engine = engine
        self.rng_seed = rng_seed

    async def create_membership_proving_key(self) -> str:
        """Proving key shared by every accumulator of this library."""
        return await self.engine.create_membership_proving_key(self.rng_seed)

    async def create_accumulator(self, accumulator_seed: int) -> AccumulatorTriple:
        created = await self.engine.create_accumulator_data(accumulator_seed)
        return AccumulatorTriple(
            accumulator_data=created.accumulator_data,
            accumulator=created.accumulator,
        )

    async def encode_element(self, member_value: str) -> str:
        return await self.engine.create_accumulator_element(member_value)

    async def setup_membership(
        self,
        member_value: str,
        holder_id: str,
        accumulator_seed: int = DEFAULT_RNG_SEED,
        membership_proving_key: Optional[str] = None,
    ) -> MembershipSetup:
        """Create a fresh accumulator containing member_value.

        Steps:
        1. Membership proving key (created unless supplied)
        2. Accumulator data
        3. Element encoding of the raw member value
        4. Add keyed by holder_id, no removals
        5. Independent witness fetch against the returned value, compared
           with the witness from step 4
        """
        if membership_proving_key is None:
            membership_proving_key = await self.create_membership_proving_key()
        triple = await self.create_accumulator(accumulator_seed)
        element = await self.encode_element(member_value)
        triple, witnesses, update_info = await self.add_members(triple, {holder_id: element})
        log.info(f"membership_setup holder={holder_id} seed={accumulator_seed}")
        return MembershipSetup(
            membership_proving_key=membership_proving_key,
            triple=triple,
            holder_id=holder_id,
            element=element,
            witness=witnesses[holder_id],
            witness_update_info=update_info,
        )

    async def add_members(
        self, triple: AccumulatorTriple, additions: Dict[str, str]
    ) -> Tuple[AccumulatorTriple, Dict[str, str], str]:
        """Add elements keyed by holder id.

        Holder ids are mapping keys: adding under an existing id replaces the
        element for that holder.

        Returns:
            (updated triple, holder id -> witness, witness update info)
        """
        response = await self.engine.accumulator_add_remove(
            triple.accumulator_data, triple.accumulator, additions, []
        )
        updated = AccumulatorTriple(
            accumulator_data=response.accumulator_data,
            accumulator=response.accumulator,
        )
        witnesses: Dict[str, str] = {}
        for holder_id, element in additions.items():
            witness = response.witnesses_for_new.get(holder_id)
            if witness is None:
                raise ConsistencyViolation.missing_witness(holder_id)
            await self.check_witness(updated, element, witness, holder_id)
            witnesses[holder_id] = witness
        return updated, witnesses, response.witness_update_info

    async def remove_members(
        self, triple: AccumulatorTriple, elements: Sequence[str]
    ) -> Tuple[AccumulatorTriple, str]:
        """Remove elements. Existing witnesses go stale against the new value.

        Returns:
            (updated triple, witness update info for remaining holders)
        """
        response = await self.engine.accumulator_add_remove(
            triple.accumulator_data, triple.accumulator, {}, list(elements)
        )
        log.info(f"accumulator_removed count={len(elements)}")
        return (
            replace(triple, accumulator_data=response.accumulator_data, accumulator=response.accumulator),
            response.witness_update_info,
        )

    async def update_witness(self, witness: str, element: str, witness_update_info: str) -> str:
        """Bring a holder's witness forward after an add/remove batch."""
        return await self.engine.update_accumulator_witness(witness, element, witness_update_info)

    async def check_witness(
        self,
        triple: AccumulatorTriple,
        element: str,
        witness: str,
        holder_id: str = "-",
    ) -> None:
        """Fetched witness for element must equal the one the holder has."""
        fetched = await self.engine.get_accumulator_witness(
            triple.accumulator_data, triple.accumulator, element
        )
        if fetched != witness:
            log.error(f"witness_mismatch holder={holder_id}")
            raise ConsistencyViolation.witness_mismatch(holder_id)
