"""
Async HTTP client for the VCP cryptographic engine.

Every primitive is one request: POST /vcp/<operation>?zkpLib=<lib>[&rngSeed=<n>]
with a JSON body. Failures of any kind are wrapped into GatewayError:
- engine error responses carry {reason, location} and are passed through
- transport failures (connect, timeout) become reason "FetchError"
- anything else (undecodable body, schema mismatch) becomes reason "UNKNOWN"

No request is retried.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from vcp.core.config import (
    DEFAULT_CRYPTO_LIBRARY,
    ENGINE_BASE_URL,
    ENGINE_PATH_PREFIX,
    ENGINE_TIMEOUT_SECONDS,
    SUPPORTED_CRYPTO_LIBRARIES,
)

from ..api_models import (
    AccumulatorAddRemoveResponse,
    AccumulatorData,
    AuthorityData,
    BlindSigningInfo,
    ClaimType,
    CreateAccumulatorResponse,
    CredAttrIndexAndDataValue,
    CredentialReqs,
    DataForVerifier,
    DataValue,
    DecryptRequest,
    DecryptResponse,
    ProofWarning,
    SharedParamValue,
    SignatureAndRelatedData,
    SignerData,
    SignerPublicData,
    WarningsAndDataForVerifier,
    WarningsAndDecryptResponses,
)
from ..exceptions import GatewayError, MisconfiguredScenario

log = logging.getLogger(__name__)

_OPAQUE = TypeAdapter(str)
_NATURAL = TypeAdapter(int)
_WARNINGS = TypeAdapter(List[ProofWarning])


class CryptoLibrary(str, Enum):
    """Engine backends selectable through the zkpLib query parameter."""
    AC2C_BBS = "AC2C_BBS"
    AC2C_PS = "AC2C_PS"
    DNC = "DNC"


def _wire(model) -> Any:
    return model.model_dump(by_alias=True, mode="json")


def _wire_map(models: Dict[str, Any]) -> Dict[str, Any]:
    return {label: _wire(model) for label, model in models.items()}


class EngineGateway:
    """Client for one crypto library on one engine endpoint."""

    def __init__(
        self,
        crypto_library: str = DEFAULT_CRYPTO_LIBRARY,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the gateway.

        Args:
            crypto_library: AC2C_BBS, AC2C_PS or DNC.
            base_url: Engine base URL. Defaults to VCP_ENGINE_URL.
            timeout: Per-request timeout in seconds. Defaults to VCP_ENGINE_TIMEOUT.
            transport: Optional httpx transport (e.g. ASGITransport for an
                in-process engine).
        """
        library = str(getattr(crypto_library, "value", crypto_library)).upper()
        if library not in SUPPORTED_CRYPTO_LIBRARIES:
            raise MisconfiguredScenario.invalid(f"unknown crypto library {crypto_library!r}")
        self.crypto_library = library
        self.base_url = (base_url or ENGINE_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else ENGINE_TIMEOUT_SECONDS
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        """Create a new HTTP client for each request.

        This avoids event loop binding issues when used across different
        async contexts.
        """
        kwargs: Dict[str, Any] = {"base_url": self.base_url, "timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _call(
        self,
        operation: str,
        adapter: Any,
        *,
        json_body: Any = None,
        text_body: Optional[str] = None,
        rng_seed: Optional[int] = None,
        method: str = "POST",
    ) -> Any:
        params: Dict[str, Any] = {"zkpLib": self.crypto_library}
        if rng_seed is not None:
            params["rngSeed"] = rng_seed
        url = f"{ENGINE_PATH_PREFIX}/{operation}"
        log.debug(
            f"engine_call op={operation} zkpLib={self.crypto_library}",
            extra={"operation": operation, "zkp_lib": self.crypto_library},
        )

        try:
            async with self._get_client() as client:
                if method == "GET":
                    response = await client.get(url, params=params)
                elif text_body is not None:
                    response = await client.post(
                        url,
                        params=params,
                        content=text_body.encode("utf-8"),
                        headers={"Content-Type": "text/plain; charset=utf-8"},
                    )
                else:
                    response = await client.post(url, params=params, json=json_body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error(f"engine_fetch_failed op={operation} error={e!r}")
            raise GatewayError.fetch_error(operation, self.crypto_library, detail=repr(e))

        if response.status_code >= 400:
            raise self._engine_error(operation, response)

        try:
            payload = response.json()
            if isinstance(adapter, TypeAdapter):
                return adapter.validate_python(payload)
            return adapter.model_validate(payload)
        except (ValueError, ValidationError) as e:
            log.error(f"engine_response_invalid op={operation} error={e}")
            raise GatewayError.unknown(operation, self.crypto_library, detail=str(e))

    def _engine_error(self, operation: str, response: httpx.Response) -> GatewayError:
        """Map an error response to GatewayError, keeping the engine's reason."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("reason"), str):
            location = body.get("location") or operation
            log.warning(
                f"engine_error op={operation} status={response.status_code} "
                f"location={location} reason={body['reason']}"
            )
            return GatewayError.from_engine(body["reason"], location, self.crypto_library)
        log.warning(f"engine_error op={operation} status={response.status_code} unstructured")
        return GatewayError.unknown(
            operation, self.crypto_library, detail=f"HTTP {response.status_code}: {response.text[:200]}"
        )

    # -------------------------------------------------------------------------
    # Issuer
    # -------------------------------------------------------------------------

    async def create_signer_data(
        self, rng_seed: int, claim_types: List[ClaimType], blinded_indices: List[int]
    ) -> SignerData:
        return await self._call(
            "createSignerData",
            SignerData,
            rng_seed=rng_seed,
            json_body={
                "claimTypes": [ClaimType(ct).value for ct in claim_types],
                "blindedAttributeIndices": list(blinded_indices),
            },
        )

    async def sign(self, rng_seed: int, signer_data: SignerData, values: List[DataValue]) -> str:
        return await self._call(
            "sign",
            _OPAQUE,
            rng_seed=rng_seed,
            json_body={"values": [_wire(v) for v in values], "signerData": _wire(signer_data)},
        )

    async def create_blind_signing_info(
        self,
        rng_seed: int,
        signer_public_data: SignerPublicData,
        blinded: List[CredAttrIndexAndDataValue],
    ) -> BlindSigningInfo:
        return await self._call(
            "createBlindSigningInfo",
            BlindSigningInfo,
            rng_seed=rng_seed,
            json_body={
                "signerPublicData": _wire(signer_public_data),
                "blindedIndicesAndValues": [_wire(b) for b in blinded],
            },
        )

    async def sign_with_blinded_attributes(
        self,
        rng_seed: int,
        signer_data: SignerData,
        non_blinded: List[CredAttrIndexAndDataValue],
        blind_info_for_signer: str,
    ) -> str:
        return await self._call(
            "signWithBlindedAttributes",
            _OPAQUE,
            rng_seed=rng_seed,
            json_body={
                "signerData": _wire(signer_data),
                "blindInfoForSigner": blind_info_for_signer,
                "nonBlindedAttributes": [_wire(n) for n in non_blinded],
            },
        )

    async def unblind_blinded_signature(
        self,
        claim_types: List[ClaimType],
        blinded: List[CredAttrIndexAndDataValue],
        info_for_unblinding: str,
        blind_signature: str,
    ) -> str:
        return await self._call(
            "unblindBlindedSignature",
            _OPAQUE,
            json_body={
                "claimTypes": [ClaimType(ct).value for ct in claim_types],
                "blindedIndicesAndValues": [_wire(b) for b in blinded],
                "infoForUnblinding": info_for_unblinding,
                "blindSignature": blind_signature,
            },
        )

    # -------------------------------------------------------------------------
    # Holder / Verifier
    # -------------------------------------------------------------------------

    async def create_proof(
        self,
        proof_reqs: Dict[str, CredentialReqs],
        shared_params: Dict[str, SharedParamValue],
        sigs_and_related_data: Dict[str, SignatureAndRelatedData],
        nonce: str,
    ) -> WarningsAndDataForVerifier:
        return await self._call(
            "createProof",
            WarningsAndDataForVerifier,
            json_body={
                "proofReqs": _wire_map(proof_reqs),
                "sharedParams": _wire_map(shared_params),
                "sigsAndRelatedData": _wire_map(sigs_and_related_data),
                "nonce": nonce,
            },
        )

    async def verify_proof(
        self,
        proof_reqs: Dict[str, CredentialReqs],
        shared_params: Dict[str, SharedParamValue],
        data_for_verifier: DataForVerifier,
        decrypt_requests: Dict[str, Dict[str, Dict[str, DecryptRequest]]],
        nonce: str,
    ) -> WarningsAndDecryptResponses:
        return await self._call(
            "verifyProof",
            WarningsAndDecryptResponses,
            json_body={
                "proofReqs": _wire_map(proof_reqs),
                "sharedParams": _wire_map(shared_params),
                "dataForVerifier": _wire(data_for_verifier),
                "decryptRequests": {
                    cred: {idx: _wire_map(by_auth) for idx, by_auth in by_idx.items()}
                    for cred, by_idx in decrypt_requests.items()
                },
                "nonce": nonce,
            },
        )

    async def verify_decryption(
        self,
        proof_reqs: Dict[str, CredentialReqs],
        shared_params: Dict[str, SharedParamValue],
        proof: str,
        decryption_keys: Dict[str, str],
        decrypt_responses: Dict[str, Dict[str, Dict[str, DecryptResponse]]],
        nonce: str,
    ) -> List[ProofWarning]:
        return await self._call(
            "verifyDecryption",
            _WARNINGS,
            json_body={
                "proofReqs": _wire_map(proof_reqs),
                "sharedParams": _wire_map(shared_params),
                "proof": proof,
                "decryptionKeys": dict(decryption_keys),
                "decryptResponses": {
                    cred: {idx: _wire_map(by_auth) for idx, by_auth in by_idx.items()}
                    for cred, by_idx in decrypt_responses.items()
                },
                "nonce": nonce,
            },
        )

    async def create_range_proof_proving_key(self, rng_seed: int) -> str:
        return await self._call("createRangeProofProvingKey", _OPAQUE, rng_seed=rng_seed)

    async def get_range_proof_max_value(self) -> int:
        return await self._call("getRangeProofMaxValue", _NATURAL, method="GET")

    # -------------------------------------------------------------------------
    # Authority
    # -------------------------------------------------------------------------

    async def create_authority_data(self, rng_seed: int) -> AuthorityData:
        return await self._call("createAuthorityData", AuthorityData, rng_seed=rng_seed)

    # -------------------------------------------------------------------------
    # Revocation manager
    # -------------------------------------------------------------------------

    async def create_membership_proving_key(self, rng_seed: int) -> str:
        return await self._call("createMembershipProvingKey", _OPAQUE, rng_seed=rng_seed)

    async def create_accumulator_data(self, rng_seed: int) -> CreateAccumulatorResponse:
        return await self._call(
            "createAccumulatorData", CreateAccumulatorResponse, rng_seed=rng_seed
        )

    async def create_accumulator_element(self, member_value: str) -> str:
        return await self._call("createAccumulatorElement", _OPAQUE, text_body=member_value)

    async def accumulator_add_remove(
        self,
        accumulator_data: AccumulatorData,
        accumulator: str,
        additions: Dict[str, str],
        removals: List[str],
    ) -> AccumulatorAddRemoveResponse:
        return await self._call(
            "accumulatorAddRemove",
            AccumulatorAddRemoveResponse,
            json_body={
                "accumulatorData": _wire(accumulator_data),
                "accumulator": accumulator,
                "additions": dict(additions),
                "removals": list(removals),
            },
        )

    async def get_accumulator_witness(
        self, accumulator_data: AccumulatorData, accumulator: str, element: str
    ) -> str:
        return await self._call(
            "getAccumulatorWitness",
            _OPAQUE,
            json_body={
                "accumulatorData": _wire(accumulator_data),
                "accumulator": accumulator,
                "accumulatorElement": element,
            },
        )

    async def update_accumulator_witness(
        self, witness: str, element: str, witness_update_info: str
    ) -> str:
        return await self._call(
            "updateAccumulatorWitness",
            _OPAQUE,
            json_body={
                "witness": witness,
                "element": element,
                "witnessUpdateInfo": witness_update_info,
            },
        )
