"""Credentials, labels and bounds used by the built-in scenarios.

Two credentials are exercised: a driver license (DL) and a monthly
subscription (sub). Both carry the same SSN so that cross-credential
equality and verifiable encryption have something to compare.
"""

from typing import List

from .api_models import ClaimType, DataValue, dv_int, dv_text
from .session import CredentialSpec

# Authority
AUTH_LABEL = "authorityPublic"
AUTHORITY_RNG_SEED = 0

# =============================================================================
# Driver license
# =============================================================================

DL = "DL"
DL_SIGNER_PUBLIC = "dlSignerPublic"
DL_SIGNER_RNG_SEED = 0

DL_VALUES: List[DataValue] = [
    dv_text('CredentialMetadata (fromList [("purpose",DVText "DriverLicense"),("version",DVText "1.0")])'),
    dv_int(37852),                                  # birth date, days
    dv_text("123-45-6789"),                         # SSN
    dv_int(180),                                    # height, cm
    dv_text("abcdef0123456789abcdef0123456789"),    # license number
]
DL_CLAIM_TYPES: List[ClaimType] = [
    ClaimType.CT_TEXT,
    ClaimType.CT_INT,
    ClaimType.CT_ENCRYPTABLE_TEXT,
    ClaimType.CT_INT,
    ClaimType.CT_ACCUMULATOR_MEMBER,
]
DL_BLINDED_INDICES = [1, 2, 3, 4]
DL_REVEALED = [0]
DL_SSN_INDEX = 2

DL_ACC = "dlAcc"
DL_ACC_INDEX = 4
DL_MPK = "dlMpk"
DL_APD = "dlAccPublicData"
DL_HOLDER_ID = "dlHolderID"
DL_ACC_SEED = 0
DL_ACC_SEQ_NUM = 1
DL_ACC_SEQ_NUM_LABEL = "DL_ACC_SEQ_NUM_LABEL"

DL_RPPK = "dlRppk"
DL_IN_RANGE_INDEX = 1
DL_RANGE_MIN = "dlMinBDdays"
DL_RANGE_MAX = "dlMaxBDdays"
DL_RANGE_MIN_VALUE = 37696
DL_RANGE_MAX_VALUE = 999999999

# =============================================================================
# Monthly subscription
# =============================================================================

SUB = "sub"
SUB_SIGNER_PUBLIC = "subSignerPublic"
SUB_SIGNER_RNG_SEED = 1

SUB_VALUES: List[DataValue] = [
    dv_text('CredentialMetadata (fromList [("purpose",DVText "MonthlySubscription"),("version",DVText "1.0")])'),
    dv_text("aaaabcdef0123456789abcdef0123456"),    # account number
    dv_int(49997),                                  # valid until, days
    dv_text("123-45-6789"),                         # SSN
]
SUB_CLAIM_TYPES: List[ClaimType] = [
    ClaimType.CT_TEXT,
    ClaimType.CT_ACCUMULATOR_MEMBER,
    ClaimType.CT_INT,
    ClaimType.CT_ENCRYPTABLE_TEXT,
]
SUB_BLINDED_INDICES = [1, 2, 3]
SUB_REVEALED = [0]
SUB_SSN_INDEX = 3

SUB_ACC = "subAcc"
SUB_ACC_INDEX = 1
SUB_MPK = "subMpk"
SUB_APD = "subAccPublicData"
SUB_HOLDER_ID = "subHolderID"
SUB_ACC_SEED = 1
SUB_ACC_SEQ_NUM = 1
SUB_ACC_SEQ_NUM_LABEL = "SUB_ACC_SEQ_NUM_LABEL"

SUB_RPPK = "subRppk"
SUB_IN_RANGE_INDEX = 2
SUB_RANGE_MIN = "subMinValiddays"
SUB_RANGE_MAX = "subMaxValiddays"
SUB_RANGE_MIN_VALUE = 0
SUB_RANGE_MAX_VALUE = 49998


def dl_credential() -> CredentialSpec:
    return CredentialSpec(
        label=DL,
        signer_label=DL_SIGNER_PUBLIC,
        claim_types=tuple(DL_CLAIM_TYPES),
        values=tuple(DL_VALUES),
        blinded_indices=tuple(DL_BLINDED_INDICES),
        signer_rng_seed=DL_SIGNER_RNG_SEED,
    )


def sub_credential() -> CredentialSpec:
    return CredentialSpec(
        label=SUB,
        signer_label=SUB_SIGNER_PUBLIC,
        claim_types=tuple(SUB_CLAIM_TYPES),
        values=tuple(SUB_VALUES),
        blinded_indices=tuple(SUB_BLINDED_INDICES),
        signer_rng_seed=SUB_SIGNER_RNG_SEED,
    )
