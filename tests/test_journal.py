"""
tests/test_journal.py

Operation journal: signing, chaining, restart, tamper detection and
state rebuild by replay.
"""

import json
import warnings

import pytest

from policyledger import LedgerError, LedgerRuntime, ValidationError
from policyledger.core.config import JournalConfig
from policyledger.ledger import GENESIS_HASH, Journal, JournalEntry, JournalReplay, RecordType
from policyledger.settlement import Treasury

from conftest import ALICE, ARBITER, HOLDER, create, make_config


def read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


def write_lines(path, lines):
    path.write_text("".join(json.dumps(d) + "\n" for d in lines))


def disk_full(entry):
    raise LedgerError("disk full")


def populate(runtime):
    """Run one of every operation type."""
    registry, engine = runtime.registry, runtime.engine
    p1 = create(registry, coverage=1000, premium=10)
    p2 = create(registry, name="Car", description="Car cover")
    registry.update_policy(p2.policy_id, "Car", "Car cover v2", 200, 20, caller=HOLDER)
    registry.purchase_policy(p1.policy_id, caller=ALICE, attached_funds=10)
    engine.file_claim(p1.policy_id, 1000, caller=ALICE, attached_funds=1100)
    engine.settle_claim(p1.policy_id, 0, caller=ARBITER)
    registry.delete_policy(p2.policy_id, caller=HOLDER)


class TestJournalWrites:

    def test_one_entry_per_operation(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        types = [d["record_type"] for d in read_lines(journal_path)]
        assert types == [
            RecordType.POLICY_CREATED,
            RecordType.POLICY_CREATED,
            RecordType.POLICY_UPDATED,
            RecordType.POLICY_PURCHASED,
            RecordType.CLAIM_FILED,
            RecordType.CLAIM_SETTLED,
            RecordType.POLICY_DELETED,
        ]

    def test_rejected_operations_are_not_journaled(self, journaled_runtime, journal_path):
        with pytest.raises(ValidationError):
            create(journaled_runtime.registry, name="")
        assert not journal_path.exists() or read_lines(journal_path) == []

    def test_first_entry_links_to_genesis(self, journaled_runtime, journal_path):
        create(journaled_runtime.registry)
        create(journaled_runtime.registry)
        first, second = [JournalEntry.from_dict(d) for d in read_lines(journal_path)]
        assert first.prev_hash == GENESIS_HASH
        assert second.verify_chain(first)
        assert first.verify_signature() and second.verify_signature()

    def test_settlement_entry_records_split(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        settled = [
            d["payload"] for d in read_lines(journal_path)
            if d["record_type"] == RecordType.CLAIM_SETTLED
        ][0]
        assert (settled["payout"], settled["fee"]) == (950, 50)

    def test_write_failure_leaves_state_untouched(self, journaled_runtime, monkeypatch):
        monkeypatch.setattr(journaled_runtime.journal, "_write", disk_full)
        with pytest.raises(LedgerError):
            create(journaled_runtime.registry)

        assert journaled_runtime.registry.total_policies == 0
        assert journaled_runtime.registry.list_active_policies() == []
        assert journaled_runtime.journal.next_sequence == 0

    def test_failed_settlement_write_claws_back_payout(self, journaled_runtime, monkeypatch):
        registry, engine, treasury = (
            journaled_runtime.registry, journaled_runtime.engine, journaled_runtime.treasury,
        )
        policy = create(registry, coverage=1000, premium=10)
        engine.file_claim(policy.policy_id, 1000, caller=ALICE, attached_funds=1100)

        monkeypatch.setattr(journaled_runtime.journal, "_write", disk_full)
        with pytest.raises(LedgerError):
            engine.settle_claim(policy.policy_id, 0, caller=ARBITER)

        assert not engine.get_claim(policy.policy_id, 0).settled
        assert treasury.balance == 1100
        assert treasury.credited[ALICE] == 0
        assert treasury.credited[ARBITER] == 0

        monkeypatch.undo()
        engine.settle_claim(policy.policy_id, 0, caller=ARBITER)
        assert treasury.credited[ALICE] + treasury.credited[ARBITER] == 1000
        assert treasury.balance == 100

    def test_failed_filing_write_returns_escrow(self, journaled_runtime, monkeypatch):
        policy = create(journaled_runtime.registry, coverage=1000, premium=10)

        monkeypatch.setattr(journaled_runtime.journal, "_write", disk_full)
        with pytest.raises(LedgerError):
            journaled_runtime.engine.file_claim(
                policy.policy_id, 1000, caller=ALICE, attached_funds=1100
            )

        assert journaled_runtime.engine.get_claims(policy.policy_id) == []
        assert journaled_runtime.treasury.balance == 0

    def test_failed_purchase_write_returns_premium(self, journaled_runtime, monkeypatch):
        policy = create(journaled_runtime.registry)

        monkeypatch.setattr(journaled_runtime.journal, "_write", disk_full)
        with pytest.raises(LedgerError):
            journaled_runtime.registry.purchase_policy(
                policy.policy_id, caller=ALICE, attached_funds=10
            )

        assert not journaled_runtime.registry.has_purchased(ALICE, policy.policy_id)
        assert journaled_runtime.treasury.balance == 0

    def test_restart_continues_sequence(self, journal_path, key):
        journal = Journal(key, journal_path)
        journal.append(RecordType.POLICY_DELETED, {"policy_id": 1, "deleted_by": "x"})

        reopened = Journal(key, journal_path)
        assert reopened.next_sequence == 1
        reopened.append(RecordType.POLICY_DELETED, {"policy_id": 2, "deleted_by": "x"})

        replay = JournalReplay()
        replay.load(journal_path)
        assert replay.verify().valid

    def test_corrupt_tail_warns(self, journal_path, key):
        journal_path.write_text('{"record_type": "policy_created", "truncat\n')
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            journal = Journal(key, journal_path)
        assert journal.next_sequence == 0
        assert any(issubclass(w.category, RuntimeWarning) for w in caught)

    def test_unknown_record_type_rejected(self, journal_path, key):
        with pytest.raises(LedgerError):
            Journal(key, journal_path).append("policy_exploded", {})


class TestJournalVerification:

    def test_clean_journal_verifies(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        replay = JournalReplay()
        replay.load(journal_path)
        summary = replay.verify()
        assert summary.valid
        assert summary.total_entries == 7
        assert summary.record_type_counts[RecordType.POLICY_CREATED] == 2

    def test_payload_tamper_detected(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        lines = read_lines(journal_path)
        lines[5]["payload"]["payout"] = 1000
        lines[5]["payload"]["fee"] = 0
        write_lines(journal_path, lines)

        replay = JournalReplay()
        replay.load(journal_path)
        summary = replay.verify()
        kinds = {(v.at_sequence, v.violation_type) for v in summary.violations}
        assert (5, "invalid_signature") in kinds
        assert (6, "chain_break") in kinds
        assert not summary.valid

    def test_dropped_entry_detected(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        lines = read_lines(journal_path)
        del lines[2]
        write_lines(journal_path, lines)

        replay = JournalReplay()
        replay.load(journal_path)
        types = {v.violation_type for v in replay.verify().violations}
        assert {"sequence_gap", "chain_break"} <= types

    def test_malformed_line_rejected(self, journal_path):
        journal_path.write_text("not json\n")
        with pytest.raises(LedgerError):
            JournalReplay().load(journal_path)

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(LedgerError):
            JournalReplay().load(tmp_path / "absent.jsonl")


class TestReplayRebuild:

    def test_replay_reproduces_state(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        rebuilt = LedgerRuntime.replay(make_config(), journal_path)

        live, replayed = journaled_runtime.state, rebuilt.state
        assert replayed.policies == live.policies
        assert replayed.live_ids == live.live_ids
        assert replayed.purchases == live.purchases
        assert replayed.claims == live.claims
        assert replayed.total_policies == live.total_policies

    def test_replay_does_not_move_funds(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        rebuilt = LedgerRuntime.replay(make_config(), journal_path)
        assert rebuilt.treasury.balance == 0
        assert rebuilt.journal is None

    def test_replayed_ledger_keeps_counting(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        rebuilt = LedgerRuntime.replay(make_config(), journal_path)
        assert create(rebuilt.registry).policy_id == 3

    def test_tampered_journal_refused(self, journaled_runtime, journal_path):
        populate(journaled_runtime)
        lines = read_lines(journal_path)
        lines[0]["payload"]["policy"]["coverage_amount"] = 10 ** 9
        write_lines(journal_path, lines)

        with pytest.raises(LedgerError):
            LedgerRuntime.replay(make_config(), journal_path)

    def test_journal_resumes_across_runtimes(self, journal_path, key):
        config = make_config(journal=JournalConfig(path=journal_path))
        first  = LedgerRuntime.from_config(config, key_manager=key)
        create(first.registry)

        second = LedgerRuntime.replay(config, journal_path)
        assert second.registry.total_policies == 1

        writer = LedgerRuntime.from_config(config, key_manager=key)
        assert writer.journal.next_sequence == 1
        assert writer.registry.total_policies == 1
        assert create(writer.registry).policy_id == 2

        replay = JournalReplay()
        replay.load(journal_path)
        assert replay.verify().valid

    def test_resumed_runtime_settles_earlier_claims(self, journal_path, key):
        config = make_config(journal=JournalConfig(path=journal_path))
        first  = LedgerRuntime.from_config(config, key_manager=key)
        policy = create(first.registry, coverage=1000, premium=10)
        first.registry.purchase_policy(policy.policy_id, caller=ALICE, attached_funds=10)
        first.engine.file_claim(policy.policy_id, 1000, caller=ALICE, attached_funds=1100)

        resumed = LedgerRuntime.from_config(config, key_manager=key)
        assert resumed.treasury.balance == 1110

        resumed.engine.settle_claim(policy.policy_id, 0, caller=ARBITER)
        assert resumed.treasury.credited[ALICE] == 950
        assert resumed.treasury.credited[ARBITER] == 50
        assert resumed.treasury.balance == 110

    def test_resumed_treasury_matches_live_treasury(self, journaled_runtime, journal_path, key):
        populate(journaled_runtime)
        config  = make_config(journal=JournalConfig(path=journal_path))
        resumed = LedgerRuntime.from_config(config, key_manager=key)

        assert resumed.treasury.balance == journaled_runtime.treasury.balance
        assert dict(resumed.treasury.credited) == dict(journaled_runtime.treasury.credited)

    def test_supplied_treasury_is_not_rebuilt(self, journaled_runtime, journal_path, key):
        populate(journaled_runtime)
        config  = make_config(journal=JournalConfig(path=journal_path))
        funded  = Treasury(opening_balance=5)
        resumed = LedgerRuntime.from_config(config, treasury=funded, key_manager=key)
        assert resumed.treasury is funded
        assert funded.balance == 5
