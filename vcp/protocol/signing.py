"""Signing orchestration: direct signing and the blind-sign/unblind flow.

Blind mode threads three pieces of state between the Holder and the Issuer:
the blinded index/value pairs (Holder only), the blind info for the signer
(Holder -> Issuer) and the info for unblinding (kept by the Holder until the
blind signature comes back).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from vcp.core.config import DEFAULT_RNG_SEED

from .api_models import (
    ClaimType,
    CredAttrIndexAndDataValue,
    DataValue,
    SignatureAndRelatedData,
    SignerData,
)
from .engine import EngineGateway
from .exceptions import MisconfiguredScenario

log = logging.getLogger(__name__)


class SigningMode(str, Enum):
    """How the Issuer signs: over all values, or with some hidden from it."""
    DIRECT = "NonBlinded"
    BLIND = "Blinded"


@dataclass
class IssuedCredential:
    """Signature plus the signer data and the values it covers."""
    signer_data: SignerData
    signature: str
    values: List[DataValue]

    def related_data(self) -> SignatureAndRelatedData:
        return SignatureAndRelatedData(
            signature=self.signature,
            values=list(self.values),
            accumulator_witnesses={},
        )


def partition(
    values: Sequence[DataValue], blinded_indices: Iterable[int]
) -> Tuple[List[CredAttrIndexAndDataValue], List[CredAttrIndexAndDataValue]]:
    """Split values into (blinded, non_blinded) index/value pairs.

    Index i is blinded iff it appears in blinded_indices. Both partitions keep
    the order of values, are disjoint, and together cover every index once.
    """
    blinded_set = set()
    for index in blinded_indices:
        if not 0 <= index < len(values):
            raise MisconfiguredScenario.invalid_index("blinded indices", index, len(values))
        if index in blinded_set:
            raise MisconfiguredScenario.invalid(f"blinded index {index} listed twice")
        blinded_set.add(index)

    blinded: List[CredAttrIndexAndDataValue] = []
    non_blinded: List[CredAttrIndexAndDataValue] = []
    for index, value in enumerate(values):
        pair = CredAttrIndexAndDataValue(index=index, value=value)
        if index in blinded_set:
            blinded.append(pair)
        else:
            non_blinded.append(pair)
    return blinded, non_blinded


class SigningOrchestrator:
    """Drives the Issuer side of credential issuance through the engine."""

    def __init__(self, engine: EngineGateway, rng_seed: int = DEFAULT_RNG_SEED):
        self.engine = engine
        self.rng_seed = rng_seed

    async def produce_signature(
        self,
        mode: SigningMode,
        claim_types: Sequence[ClaimType],
        blinded_indices: Sequence[int],
        values: Sequence[DataValue],
        signer_rng_seed: int = DEFAULT_RNG_SEED,
    ) -> IssuedCredential:
        """Issue a signature over values.

        Args:
            mode: DIRECT or BLIND.
            claim_types: One claim type per value.
            blinded_indices: Indices hidden from the Issuer (BLIND only).
            values: Attribute values in credential order.
            signer_rng_seed: Seed for the signer key material.

        Returns:
            IssuedCredential. Nothing is returned if any engine step fails.
        """
        if len(claim_types) != len(values):
            raise MisconfiguredScenario.invalid(
                f"{len(claim_types)} claim types for {len(values)} values"
            )
        values = list(values)
        mode = SigningMode(mode)

        if mode is SigningMode.DIRECT:
            signer_data = await self.engine.create_signer_data(signer_rng_seed, list(claim_types), [])
            signature = await self.engine.sign(self.rng_seed, signer_data, values)
            log.info(f"signed_direct attributes={len(values)}")
            return IssuedCredential(signer_data=signer_data, signature=signature, values=values)

        blinded, non_blinded = partition(values, blinded_indices)
        signer_data = await self.engine.create_signer_data(
            signer_rng_seed, list(claim_types), sorted(p.index for p in blinded)
        )
        blind_info = await self.engine.create_blind_signing_info(
            self.rng_seed, signer_data.signer_public_data, blinded
        )
        blind_signature = await self.engine.sign_with_blinded_attributes(
            self.rng_seed, signer_data, non_blinded, blind_info.blind_info_for_signer
        )
        signature = await self.engine.unblind_blinded_signature(
            list(claim_types), blinded, blind_info.info_for_unblinding, blind_signature
        )
        log.info(f"signed_blind attributes={len(values)} blinded={len(blinded)}")
        return IssuedCredential(signer_data=signer_data, signature=signature, values=values)
