"""Tests for accumulator setup, membership and removal."""

import pytest

from vcp.protocol.accumulator import AccumulatorOrchestrator
from vcp.protocol.exceptions import ConsistencyViolation, GatewayError


@pytest.fixture
def orchestrator(gateway):
    return AccumulatorOrchestrator(gateway)


class TestSetupMembership:
    """Tests for AccumulatorOrchestrator.setup_membership."""

    @pytest.mark.asyncio
    async def test_setup_sequence(self, orchestrator, fake_engine):
        """Test the engine call order for a single-member setup."""
        setup = await orchestrator.setup_membership("abcdef", "dlHolderID", accumulator_seed=0)
        assert fake_engine.operations() == [
            "createMembershipProvingKey",
            "createAccumulatorData",
            "createAccumulatorElement",
            "accumulatorAddRemove",
            "getAccumulatorWitness",
        ]
        add = fake_engine.calls_to("accumulatorAddRemove")[0].body
        assert add["additions"] == {"dlHolderID": "elem:abcdef"}
        assert add["removals"] == []
        # witness lookup uses the value returned by the add, not the initial one
        lookup = fake_engine.calls_to("getAccumulatorWitness")[0].body
        assert lookup["accumulator"] == setup.triple.accumulator
        assert setup.witness.startswith("wit-")

    @pytest.mark.asyncio
    async def test_supplied_proving_key_is_reused(self, orchestrator, fake_engine):
        """Test that a supplied proving key skips key creation."""
        setup = await orchestrator.setup_membership("abc", "h", membership_proving_key="mpk-shared")
        assert setup.membership_proving_key == "mpk-shared"
        assert "createMembershipProvingKey" not in fake_engine.operations()

    @pytest.mark.asyncio
    async def test_witness_mismatch(self, orchestrator, fake_engine):
        """Test that a witness differing from the lookup is rejected."""
        fake_engine.respond("getAccumulatorWitness", "wit-somebody-else")
        with pytest.raises(ConsistencyViolation, match="dlHolderID"):
            await orchestrator.setup_membership("abc", "dlHolderID")

    @pytest.mark.asyncio
    async def test_missing_witness(self, orchestrator, fake_engine):
        """Test that a missing witness for the holder is rejected."""
        fake_engine.respond("accumulatorAddRemove", {
            "witnessUpdateInfo": "{}",
            "witnessesForNew": {},
            "accumulatorData": {"accumulatorPublicData": "apd", "accumulatorSecretData": "asd"},
            "accumulator": "{}",
        })
        with pytest.raises(ConsistencyViolation, match="no witness"):
            await orchestrator.setup_membership("abc", "dlHolderID")


class TestMembershipChanges:
    """Tests for adding, removing and updating members."""

    @pytest.mark.asyncio
    async def test_batch_add_returns_witness_per_holder(self, orchestrator, fake_engine):
        """Test that a batch add yields one witness per holder."""
        setup = await orchestrator.setup_membership("abc", "h1")
        triple, witnesses, _ = await orchestrator.add_members(setup.triple, {"h2": "elem:x", "h3": "elem:y"})
        assert set(witnesses) == {"h2", "h3"}
        assert triple.accumulator != setup.triple.accumulator

    @pytest.mark.asyncio
    async def test_witness_update_after_add(self, orchestrator):
        """Test that an updated witness passes the consistency check."""
        setup = await orchestrator.setup_membership("abc", "h1")
        triple, _, update_info = await orchestrator.add_members(setup.triple, {"h2": "elem:x"})
        updated = await orchestrator.update_witness(setup.witness, setup.element, update_info)
        assert updated != setup.witness
        await orchestrator.check_witness(triple, setup.element, updated, "h1")

    @pytest.mark.asyncio
    async def test_stale_witness_fails_check(self, orchestrator):
        """Test that a witness from before an update fails the check."""
        setup = await orchestrator.setup_membership("abc", "h1")
        triple, _, _ = await orchestrator.add_members(setup.triple, {"h2": "elem:x"})
        with pytest.raises(ConsistencyViolation):
            await orchestrator.check_witness(triple, setup.element, setup.witness, "h1")

    @pytest.mark.asyncio
    async def test_removed_element_has_no_witness(self, orchestrator, fake_engine):
        """Test that a removed element can no longer obtain a witness."""
        setup = await orchestrator.setup_membership("abc", "h1")
        triple, _ = await orchestrator.remove_members(setup.triple, [setup.element])
        assert fake_engine.calls_to("accumulatorAddRemove")[-1].body["removals"] == [setup.element]
        with pytest.raises(GatewayError, match="not a member"):
            await orchestrator.check_witness(triple, setup.element, setup.witness)
