"""Tests for the engine gateway."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from vcp.protocol.api_models import ClaimType, dv_int, dv_text
from vcp.protocol.engine import CryptoLibrary, EngineGateway
from vcp.protocol.exceptions import ErrorCode, GatewayError, MisconfiguredScenario


def _patched_client(mock_client, **methods):
    mock_instance = AsyncMock()
    for name, mock in methods.items():
        setattr(mock_instance, name, mock)
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=None)
    mock_client.return_value = mock_instance
    return mock_instance


class TestConstruction:
    """Tests for EngineGateway construction."""

    def test_accepts_enum_and_lowercase(self):
        """Test library names given as enum or lowercase string."""
        assert EngineGateway(CryptoLibrary.AC2C_PS).crypto_library == "AC2C_PS"
        assert EngineGateway("dnc").crypto_library == "DNC"

    def test_unknown_library_rejected(self):
        """Test that an unsupported library is rejected."""
        with pytest.raises(MisconfiguredScenario, match="unknown crypto library"):
            EngineGateway("RSA")

    def test_trailing_slash_stripped(self):
        """Test that the base URL loses its trailing slash."""
        assert EngineGateway("DNC", base_url="http://engine:8080/").base_url == "http://engine:8080"


class TestRequests:
    """Tests for request shape on the wire."""

    @pytest.mark.asyncio
    async def test_query_parameters_and_camel_case_body(self, gateway, fake_engine):
        """Test zkpLib and rngSeed parameters and camelCase body keys."""
        await gateway.create_signer_data(7, [ClaimType.CT_TEXT, ClaimType.CT_INT], [1])
        call = fake_engine.calls_to("createSignerData")[0]
        assert call.params == {"zkpLib": "DNC", "rngSeed": "7"}
        assert call.body == {"claimTypes": ["CTText", "CTInt"], "blindedAttributeIndices": [1]}

    @pytest.mark.asyncio
    async def test_operations_without_seed_omit_it(self, gateway, fake_engine):
        """Test that rngSeed is omitted when the operation takes none."""
        await gateway.create_accumulator_element("abc")
        assert fake_engine.calls_to("createAccumulatorElement")[0].params == {"zkpLib": "DNC"}

    @pytest.mark.asyncio
    async def test_accumulator_element_is_raw_text(self, gateway, fake_engine):
        """Test that createAccumulatorElement sends a raw text body."""
        element = await gateway.create_accumulator_element("abcdef0123456789")
        assert fake_engine.calls_to("createAccumulatorElement")[0].body == "abcdef0123456789"
        assert element == "elem:abcdef0123456789"

    @pytest.mark.asyncio
    async def test_range_max_value_is_a_get(self, gateway, fake_engine):
        """Test that getRangeProofMaxValue is a bodiless GET."""
        assert await gateway.get_range_proof_max_value() == 2 ** 32 - 1
        assert fake_engine.calls_to("getRangeProofMaxValue")[0].body is None

    @pytest.mark.asyncio
    async def test_sign_sends_tagged_values(self, gateway, fake_engine):
        """Test that sign sends tagged values and the signer data."""
        signer = await gateway.create_signer_data(0, [ClaimType.CT_INT, ClaimType.CT_TEXT], [])
        signature = await gateway.sign(0, signer, [dv_int(180), dv_text("x")])
        assert signature.startswith("sig-")
        body = fake_engine.calls_to("sign")[0].body
        assert body["values"] == [{"tag": "DVInt", "contents": 180}, {"tag": "DVText", "contents": "x"}]
        assert body["signerData"]["signerSecretData"] == "ssec-0"


class TestErrors:
    """Tests for engine error mapping."""

    @pytest.mark.asyncio
    async def test_engine_reason_and_location_pass_through(self, gateway, fake_engine):
        """Test that a structured engine error keeps reason and location."""
        fake_engine.fail("createProof", reason="General(\"bad proof\")", location="createProof")
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_proof({}, {}, {}, "n")
        err = exc_info.value
        assert err.code == ErrorCode.ENGINE_REQUEST_FAILED
        assert err.reason == 'General("bad proof")'
        assert err.location == "createProof"
        assert err.crypto_library == "DNC"

    @pytest.mark.asyncio
    async def test_unstructured_error_is_unknown(self, gateway, fake_engine):
        """Test that an unstructured error body maps to UNKNOWN."""
        fake_engine.fail_unstructured("sign", status=500)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.sign(0, await gateway.create_signer_data(0, [], []), [])
        assert exc_info.value.reason == "UNKNOWN"
        assert exc_info.value.code == ErrorCode.ENGINE_UNKNOWN
        assert exc_info.value.location == "sign"

    @pytest.mark.asyncio
    async def test_schema_mismatch_is_unknown(self, gateway, fake_engine):
        """Test that a success body with the wrong schema maps to UNKNOWN."""
        fake_engine.respond("createAuthorityData", {"authorityPublicData": "only"})
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_authority_data(0)
        assert exc_info.value.reason == "UNKNOWN"
        assert "authoritySecretData" in exc_info.value.detail or "authority_secret_data" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_connect_error_is_fetch_error(self):
        """Test that a connection failure maps to FetchError."""
        gateway = EngineGateway("AC2C_BBS", base_url="http://engine")
        with patch("httpx.AsyncClient") as mock_client:
            _patched_client(mock_client, post=AsyncMock(side_effect=httpx.ConnectError("refused")))
            with pytest.raises(GatewayError) as exc_info:
                await gateway.create_membership_proving_key(0)
        err = exc_info.value
        assert err.reason == "FetchError"
        assert err.code == ErrorCode.ENGINE_FETCH_FAILED
        assert err.location == "createMembershipProvingKey"
        assert err.crypto_library == "AC2C_BBS"

    @pytest.mark.asyncio
    async def test_timeout_is_fetch_error(self):
        """Test that a timeout maps to FetchError."""
        gateway = EngineGateway("DNC", base_url="http://engine", timeout=1)
        with patch("httpx.AsyncClient") as mock_client:
            _patched_client(mock_client, get=AsyncMock(side_effect=httpx.ReadTimeout("timeout")))
            with pytest.raises(GatewayError) as exc_info:
                await gateway.get_range_proof_max_value()
        assert exc_info.value.reason == "FetchError"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        httpx.DecodingError("bad gzip stream"),
        httpx.TooManyRedirects("redirect loop"),
        httpx.InvalidURL("bad engine url"),
    ])
    async def test_other_httpx_errors_are_fetch_errors(self, error):
        """Test that decoding, redirect and URL errors surface as FetchError."""
        def handler(request):
            raise error

        gateway = EngineGateway("DNC", base_url="http://engine", transport=httpx.MockTransport(handler))
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_authority_data(0)
        err = exc_info.value
        assert err.reason == "FetchError"
        assert err.code == ErrorCode.ENGINE_FETCH_FAILED
        assert err.location == "createAuthorityData"
        assert type(error).__name__ in err.detail

    @pytest.mark.asyncio
    async def test_undecodable_body_is_unknown(self):
        """Test that a non-JSON success body maps to UNKNOWN."""
        gateway = EngineGateway("DNC", base_url="http://engine")
        with patch("httpx.AsyncClient") as mock_client:
            mock_response = MagicMock()
            mock_response.status_code = 200
            mock_response.json = MagicMock(side_effect=ValueError("not json"))
            _patched_client(mock_client, post=AsyncMock(return_value=mock_response))
            with pytest.raises(GatewayError) as exc_info:
                await gateway.create_range_proof_proving_key(0)
        assert exc_info.value.reason == "UNKNOWN"

    @pytest.mark.asyncio
    async def test_describe_names_operation_and_reason(self, gateway, fake_engine):
        """Test the one-line user description of an engine error."""
        fake_engine.fail("sign", reason="bad signer data")
        with pytest.raises(GatewayError) as exc_info:
            await gateway.sign(0, await gateway.create_signer_data(0, [], []), [])
        assert exc_info.value.describe() == (
            "ENGINE_REQUEST_FAILED: stage=- operation=sign reason=bad signer data"
        )
