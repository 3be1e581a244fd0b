"""Tests for engine wire models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from vcp.protocol.api_models import (
    ClaimType,
    CredentialReqs,
    DataValue,
    DVInt,
    DVText,
    SharedParamValue,
    SignerData,
    WarningsAndDecryptResponses,
    dv_int,
    dv_text,
    plain_value,
    value_as_text,
)


class TestDataValue:
    """DVInt | DVText tagged union."""

    def test_discriminates_on_tag(self):
        """Test that the tag selects the union member."""
        adapter = TypeAdapter(DataValue)
        assert isinstance(adapter.validate_python({"tag": "DVInt", "contents": 180}), DVInt)
        assert isinstance(adapter.validate_python({"tag": "DVText", "contents": "x"}), DVText)

    def test_unknown_tag_rejected(self):
        """Test that an unknown tag fails validation."""
        with pytest.raises(ValidationError):
            TypeAdapter(DataValue).validate_python({"tag": "DVBool", "contents": True})

    def test_wire_form(self):
        """Test the tag and contents wire form."""
        assert dv_int(37852).to_wire() == {"tag": "DVInt", "contents": 37852}
        assert dv_text("123-45-6789").to_wire() == {"tag": "DVText", "contents": "123-45-6789"}

    def test_plain_and_text_rendering(self):
        """Test plain and text rendering of values."""
        assert plain_value(dv_int(180)) == 180
        assert value_as_text(dv_int(180)) == "180"
        assert value_as_text(dv_text("abc")) == "abc"

    def test_equality_is_by_tag_and_contents(self):
        """Test that equality compares tag as well as contents."""
        assert dv_int(1) == dv_int(1)
        assert dv_text("1") != dv_int(1)


class TestSharedParamValue:
    """Tests for SharedParamValue constructors."""

    def test_text_constructor(self):
        """Test the text constructor wire form."""
        assert SharedParamValue.text("k").to_wire() == {
            "tag": "SPVOne",
            "contents": {"tag": "DVText", "contents": "k"},
        }

    def test_integer_constructor(self):
        """Test the integer constructor."""
        assert SharedParamValue.integer(49998).contents == dv_int(49998)


class TestCredentialReqs:
    """Tests for CredentialReqs descriptors."""

    def test_empty_descriptor_carries_every_list(self):
        """Test that an empty descriptor still sends every list."""
        wire = CredentialReqs(signer_label="dlSignerPublic").to_wire()
        assert wire == {
            "signerLabel": "dlSignerPublic",
            "disclosed": [],
            "inAccum": [],
            "notInAccum": [],
            "inRange": [],
            "encryptedFor": [],
            "equalTo": [],
        }

    def test_descriptors_do_not_share_lists(self):
        """Test that list defaults are per instance."""
        a = CredentialReqs(signer_label="a")
        b = CredentialReqs(signer_label="b")
        a.disclosed.append(0)
        assert b.disclosed == []


class TestAliases:
    """Tests for camelCase alias parsing."""

    def test_signer_data_accepts_camel_case(self):
        """Test parsing signer data from camelCase JSON."""
        signer = SignerData.model_validate({
            "signerPublicData": {
                "signerPublicSetupData": "spub",
                "signerPublicSchema": ["CTText", "CTInt"],
            },
            "signerSecretData": "ssec",
        })
        assert signer.signer_public_data.signer_public_schema == [ClaimType.CT_TEXT, ClaimType.CT_INT]

    def test_nested_decrypt_responses_parse(self):
        """Test parsing the nested decrypt response tree."""
        parsed = WarningsAndDecryptResponses.model_validate({
            "warnings": [],
            "decryptResponses": {
                "DL": {"2": {"authorityPublic": {"value": "123-45-6789", "decryptionProof": "p"}}}
            },
        })
        assert parsed.decrypt_responses["DL"]["2"]["authorityPublic"].value == "123-45-6789"

    def test_malformed_payload_rejected(self):
        """Test that a malformed payload fails validation."""
        with pytest.raises(ValidationError):
            WarningsAndDecryptResponses.model_validate({"warnings": "none"})
