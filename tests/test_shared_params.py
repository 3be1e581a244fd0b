"""Tests for the shared parameter registry."""

import json

import pytest

from vcp.protocol.api_models import SignerPublicData, SharedParamValue, dv_int
from vcp.protocol.exceptions import MisconfiguredScenario
from vcp.protocol.shared_params import SharedParams


class TestRegistration:
    """Tests for registering shared parameters."""

    def test_identical_reregistration_is_noop(self):
        """Test that registering the same value twice is a no-op."""
        shared = SharedParams()
        shared.put_int("dlMinBDdays", 37696)
        shared.put_int("dlMinBDdays", 37696)
        assert len(shared) == 1

    def test_conflicting_value_rejected(self):
        """Test that a different value under a used label is rejected."""
        shared = SharedParams()
        shared.put_int("dlMinBDdays", 37696)
        with pytest.raises(MisconfiguredScenario, match="already registered"):
            shared.put_int("dlMinBDdays", 0)

    def test_replace_requires_existing_label(self):
        """Test that replace needs an existing label."""
        with pytest.raises(MisconfiguredScenario, match="dlAcc"):
            SharedParams().replace_opaque("dlAcc", "acc")

    def test_replace_updates_value(self):
        """Test that replace overwrites the value."""
        shared = SharedParams()
        shared.put_opaque("dlAcc", "acc-1")
        shared.replace_opaque("dlAcc", "acc-2")
        assert json.loads(shared.get_text("dlAcc")) == "acc-2"

    def test_opaque_material_is_json_encoded(self):
        """Test that opaque material is stored JSON-encoded."""
        shared = SharedParams()
        shared.put_opaque("dlRppk", "rpk-0")
        assert shared.get_text("dlRppk") == '"rpk-0"'

    def test_document_is_camel_case_json(self):
        """Test that documents are stored as camelCase JSON."""
        shared = SharedParams()
        shared.put_document(
            "dlSignerPublic",
            SignerPublicData(signer_public_setup_data="spub", signer_public_schema=["CTText"]),
        )
        assert json.loads(shared.get_text("dlSignerPublic")) == {
            "signerPublicSetupData": "spub",
            "signerPublicSchema": ["CTText"],
        }


class TestLookup:
    """Tests for shared parameter lookup."""

    def test_unknown_label_names_referrer(self):
        """Test that a missing label error names its referrer."""
        with pytest.raises(MisconfiguredScenario, match="referenced by DL"):
            SharedParams().get("dlRppk", referenced_by="DL")

    def test_typed_getters_do_not_coerce(self):
        """Test that typed getters reject the other value kind."""
        shared = SharedParams()
        shared.put_text("t", "1")
        shared.put("n", SharedParamValue(contents=dv_int(1)))
        assert shared.get_int("n") == 1
        with pytest.raises(MisconfiguredScenario):
            shared.get_int("t")
        with pytest.raises(MisconfiguredScenario):
            shared.get_text("n")

    def test_require_reports_first_missing(self):
        """Test that require reports the first missing label."""
        shared = SharedParams()
        shared.put_text("a", "x")
        with pytest.raises(MisconfiguredScenario, match="'b'"):
            shared.require(["a", "b"])
