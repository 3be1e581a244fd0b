"""
VCP orchestrator configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the engine's published API, cannot be changed locally
- CONFIGURABLE: Defaults that a deployment may override
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os

# =============================================================================
# NORMATIVE CONSTANTS (fixed by the engine API)
# =============================================================================

# Every engine operation lives under this prefix: POST /vcp/<operation>
ENGINE_PATH_PREFIX: str = "/vcp"

# Cryptographic library identifiers accepted in the zkpLib query parameter
SUPPORTED_CRYPTO_LIBRARIES: frozenset[str] = frozenset({"AC2C_BBS", "AC2C_PS", "DNC"})

# The AC2C family does not implement authority-mediated decryption
# verification. verifyDecryption fails with a reason carrying this marker.
DECRYPTION_UNSUPPORTED_LIBRARIES: frozenset[str] = frozenset({"AC2C_BBS", "AC2C_PS"})
UNIMPLEMENTED_MARKER: str = "UNIMPLEMENTED"
VERIFY_DECRYPTION_OPERATION: str = "verifyDecryption"

# Sentinel reasons used when the engine never produced a structured error
FETCH_ERROR_REASON: str = "FetchError"
UNKNOWN_ERROR_REASON: str = "UNKNOWN"

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Sequence number published for freshly created accumulators
DEFAULT_ACCUMULATOR_SEQ_NUM: int = 1

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Engine endpoint. The engine listens on 8080 unless deployed otherwise.
ENGINE_BASE_URL: str = os.getenv("VCP_ENGINE_URL", "http://127.0.0.1:8080")

# Proof generation on the engine can take minutes for large requirement sets
ENGINE_TIMEOUT_SECONDS: float = float(os.getenv("VCP_ENGINE_TIMEOUT", "600"))

# Library used when a caller does not pick one
DEFAULT_CRYPTO_LIBRARY: str = os.getenv("VCP_ZKP_LIB", "DNC").upper()

# Nonce binding proofs to a verification context
SESSION_NONCE: str = os.getenv("VCP_NONCE", "nonce-from-python")

# Seed passed to engine operations that generate key material
DEFAULT_RNG_SEED: int = int(os.getenv("VCP_RNG_SEED", "0"))
