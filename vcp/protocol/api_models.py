"""
VCP engine wire models.

Mirrors the engine's JSON schema: camelCase keys, tagged unions encoded as
{"tag": ..., "contents": ...}, opaque cryptographic material as strings.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for engine payloads: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Attribute values
# =============================================================================

class ClaimType(str, Enum):
    """How the engine encodes an attribute before signing."""
    CT_TEXT = "CTText"
    CT_ENCRYPTABLE_TEXT = "CTEncryptableText"
    CT_INT = "CTInt"
    CT_ACCUMULATOR_MEMBER = "CTAccumulatorMember"


class DVInt(WireModel):
    tag: Literal["DVInt"] = "DVInt"
    contents: int


class DVText(WireModel):
    tag: Literal["DVText"] = "DVText"
    contents: str


DataValue = Annotated[Union[DVInt, DVText], Field(discriminator="tag")]


def dv_int(value: int) -> DVInt:
    return DVInt(contents=value)


def dv_text(value: str) -> DVText:
    return DVText(contents=value)


def plain_value(value: DataValue) -> Union[int, str]:
    """Unwrap a DataValue to its Python value."""
    if isinstance(value, DVInt):
        return value.contents
    if isinstance(value, DVText):
        return value.contents
    raise TypeError(f"Unsupported data value: {value!r}")


def value_as_text(value: DataValue) -> str:
    """Render a DataValue the way the engine reports decrypted plaintext."""
    if isinstance(value, DVInt):
        return str(value.contents)
    if isinstance(value, DVText):
        return value.contents
    raise TypeError(f"Unsupported data value: {value!r}")


class SharedParamValue(WireModel):
    """Labelled public value referenced from proof requirements."""
    tag: Literal["SPVOne"] = "SPVOne"
    contents: DataValue

    @classmethod
    def text(cls, value: str) -> "SharedParamValue":
        return cls(contents=dv_text(value))

    @classmethod
    def integer(cls, value: int) -> "SharedParamValue":
        return cls(contents=dv_int(value))


class CredAttrIndexAndDataValue(WireModel):
    index: int
    value: DataValue


# =============================================================================
# Issuer
# =============================================================================

class SignerPublicData(WireModel):
    signer_public_setup_data: str
    signer_public_schema: List[ClaimType]


class SignerData(WireModel):
    signer_public_data: SignerPublicData
    signer_secret_data: str


class BlindSigningInfo(WireModel):
    blind_info_for_signer: str
    info_for_unblinding: str


# =============================================================================
# Proof requirements
# =============================================================================

class EqInfo(WireModel):
    from_index: int
    to_label: str
    to_index: int


class InRangeInfo(WireModel):
    index: int
    min_label: str
    max_label: str
    range_proving_key_label: str


class InAccumInfo(WireModel):
    index: int
    membership_proving_key_label: str
    accumulator_public_data_label: str
    accumulator_label: str
    accumulator_seq_num_label: str


class IndexAndLabel(WireModel):
    index: int
    label: str


class CredentialReqs(WireModel):
    """Per-credential requirements composed by the Verifier."""
    signer_label: str
    disclosed: List[int] = Field(default_factory=list)
    in_accum: List[InAccumInfo] = Field(default_factory=list)
    not_in_accum: List[IndexAndLabel] = Field(default_factory=list)
    in_range: List[InRangeInfo] = Field(default_factory=list)
    encrypted_for: List[IndexAndLabel] = Field(default_factory=list)
    equal_to: List[EqInfo] = Field(default_factory=list)


class SignatureAndRelatedData(WireModel):
    """Holder-side material for one credential."""
    signature: str
    values: List[DataValue]
    accumulator_witnesses: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Accumulators
# =============================================================================

class AccumulatorData(WireModel):
    accumulator_public_data: str
    accumulator_secret_data: str


class CreateAccumulatorResponse(WireModel):
    accumulator_data: AccumulatorData
    accumulator: str


class AccumulatorAddRemoveResponse(WireModel):
    witness_update_info: str
    witnesses_for_new: Dict[str, str] = Field(default_factory=dict)
    accumulator_data: AccumulatorData
    accumulator: str


# =============================================================================
# Authority
# =============================================================================

class AuthorityData(WireModel):
    authority_public_data: str
    authority_secret_data: str
    authority_decryption_key: str


class DecryptRequest(WireModel):
    authority_secret_data: str
    authority_decryption_key: str


class DecryptResponse(WireModel):
    value: str
    decryption_proof: str


# =============================================================================
# Proofs
# =============================================================================

class ProofWarning(WireModel):
    """Engine warning, e.g. UnsupportedFeature or RevealPrivacyWarning."""
    tag: str
    contents: Optional[Any] = None


class DataForVerifier(WireModel):
    revealed_idxs_and_vals: Dict[str, Dict[str, DataValue]] = Field(default_factory=dict)
    proof: str


class WarningsAndDataForVerifier(WireModel):
    warnings: List[ProofWarning] = Field(default_factory=list)
    data_for_verifier: DataForVerifier


class WarningsAndDecryptResponses(WireModel):
    warnings: List[ProofWarning] = Field(default_factory=list)
    decrypt_responses: Dict[str, Dict[str, Dict[str, DecryptResponse]]] = Field(
        default_factory=dict
    )
