"""Tests for credential requirement descriptors."""

import pytest

from vcp.protocol.exceptions import MisconfiguredScenario
from vcp.protocol.requirements import ProofRequirements
from vcp.protocol.shared_params import SharedParams


@pytest.fixture
def reqs():
    r = ProofRequirements()
    r.add_credential("DL", "dlSignerPublic")
    r.add_credential("sub", "subSignerPublic")
    return r


@pytest.fixture
def shared():
    s = SharedParams()
    s.put_text("dlSignerPublic", "{}")
    s.put_text("subSignerPublic", "{}")
    return s


class TestBuilders:
    """Tests for the additive requirement builders."""

    def test_duplicate_credential_rejected(self, reqs):
        """Test that a credential cannot be added twice."""
        with pytest.raises(MisconfiguredScenario, match="already registered"):
            reqs.add_credential("DL", "other")

    def test_disclose_is_additive_and_deduplicated(self, reqs):
        """Test that repeated disclosures merge without duplicates."""
        reqs.disclose("DL", 0)
        reqs.disclose("DL", 3, 0)
        assert reqs["DL"].disclosed == [0, 3]

    def test_unknown_credential(self, reqs):
        """Test that builders reject an unknown credential."""
        with pytest.raises(MisconfiguredScenario, match="unknown credential"):
            reqs.disclose("passport", 0)

    def test_wire_shape_of_constraints(self, reqs):
        """Test the wire shape of every constraint kind."""
        reqs.require_in_range("DL", 1, "dlMinBDdays", "dlMaxBDdays", "dlRppk")
        reqs.require_in_accumulator("DL", 4, "dlMpk", "dlAccPublicData", "dlAcc", "DL_ACC_SEQ_NUM_LABEL")
        reqs.require_encrypted_for("DL", 2, "authorityPublic")
        reqs.require_equal("DL", 2, "sub", 3)
        wire = reqs["DL"].to_wire()
        assert wire["inRange"] == [{
            "index": 1, "minLabel": "dlMinBDdays", "maxLabel": "dlMaxBDdays",
            "rangeProvingKeyLabel": "dlRppk",
        }]
        assert wire["inAccum"][0]["accumulatorSeqNumLabel"] == "DL_ACC_SEQ_NUM_LABEL"
        assert wire["encryptedFor"] == [{"index": 2, "label": "authorityPublic"}]
        assert wire["equalTo"] == [{"fromIndex": 2, "toLabel": "sub", "toIndex": 3}]


class TestValidate:
    """Tests for ProofRequirements.validate."""

    def test_valid_requirements_pass(self, reqs, shared):
        """Test that complete requirements validate."""
        reqs.disclose("DL", 0)
        reqs.require_equal("DL", 2, "sub", 3)
        reqs.validate(shared, {"DL": 5, "sub": 4})

    def test_missing_shared_label(self, reqs, shared):
        """Test that an unregistered shared label is reported."""
        reqs.require_in_range("DL", 1, "dlMinBDdays", "dlMaxBDdays", "dlRppk")
        with pytest.raises(MisconfiguredScenario, match="referenced by DL"):
            reqs.validate(shared)

    def test_equality_target_must_be_a_credential(self, reqs, shared):
        """Test that an equality target must be a known credential."""
        reqs.require_equal("DL", 2, "passport", 0)
        with pytest.raises(MisconfiguredScenario, match="passport"):
            reqs.validate(shared)

    def test_index_out_of_range(self, reqs, shared):
        """Test that an attribute index past the credential is rejected."""
        reqs.disclose("sub", 4)
        with pytest.raises(MisconfiguredScenario, match="out of range for 'sub'"):
            reqs.validate(shared, {"DL": 5, "sub": 4})

    def test_equality_target_index_out_of_range(self, reqs, shared):
        """Test that an equality target index is range checked."""
        reqs.require_equal("DL", 2, "sub", 9)
        with pytest.raises(MisconfiguredScenario, match="out of range for 'sub'"):
            reqs.validate(shared, {"DL": 5, "sub": 4})

    def test_referenced_labels(self, reqs):
        """Test collection of every referenced shared label."""
        reqs.require_not_in_accumulator("sub", 1, "revoked")
        assert reqs.referenced_labels("sub") == {"subSignerPublic", "revoked"}
