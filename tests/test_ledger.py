"""Tests for the ledger audit sinks."""

import pytest

from app.handlers.ledger import (
    DatabaseLedger,
    InMemoryLedger,
    NullLedger,
    build_record,
    get_record_by_hash,
    get_recent_records,
    get_records_for_entity,
    network_name,
)
from app.models.ledger import LedgerAction


class TestBuildRecord:
    """Receipt construction."""

    def test_mock_chain(self):
        record = build_record("project", "KEN-2023-0045", LedgerAction.CREATED, {"name": "x"})

        assert record.tx_hash.startswith("0x")
        assert len(record.tx_hash) == 66
        assert record.network == "mock"
        assert record.block_number == 0
        assert record.data == {"name": "x"}

    def test_hashes_are_unique_for_identical_payloads(self):
        first = build_record("credit", "CR-1", LedgerAction.RETIRED)
        second = build_record("credit", "CR-1", LedgerAction.RETIRED)

        assert first.tx_hash != second.tx_hash

    def test_real_chain_gets_block_number(self):
        record = build_record("credit", "CR-1", LedgerAction.CREATED, chain_id=137)

        assert record.network == "polygon-mainnet"
        assert record.block_number > 0

    @pytest.mark.parametrize("chain_id, expected", [
        (0, "mock"),
        (1, "ethereum-mainnet"),
        (80001, "polygon-mumbai"),
        (999, "chain-999"),
    ])
    def test_network_names(self, chain_id, expected):
        assert network_name(chain_id) == expected


class TestSinks:
    """The three sink implementations."""

    @pytest.mark.asyncio
    async def test_null_ledger_keeps_nothing(self, test_session):
        receipt = await NullLedger().record("project", "P1", LedgerAction.CREATED)

        assert receipt.id is None
        assert await get_recent_records(test_session) == []

    @pytest.mark.asyncio
    async def test_in_memory_ledger(self):
        ledger = InMemoryLedger()

        await ledger.record("project", "P1", LedgerAction.CREATED)
        await ledger.record("credit", "CR-1", LedgerAction.CREATED)
        await ledger.record("project", "P1", LedgerAction.UPDATED)

        assert len(ledger.records) == 3
        assert [r.action for r in ledger.for_entity("project", "P1")] == [
            LedgerAction.CREATED,
            LedgerAction.UPDATED,
        ]

    @pytest.mark.asyncio
    async def test_database_ledger_joins_caller_transaction(self, test_session):
        ledger = DatabaseLedger(test_session)

        receipt = await ledger.record("credit", "CR-1", LedgerAction.CREATED, {"quantity": 100})
        await test_session.rollback()

        assert receipt.id is not None
        assert await get_record_by_hash(test_session, receipt.tx_hash) is None

    @pytest.mark.asyncio
    async def test_database_ledger_queries(self, test_session):
        ledger = DatabaseLedger(test_session)
        created = await ledger.record("credit", "CR-1", LedgerAction.CREATED)
        retired = await ledger.record("credit", "CR-1", LedgerAction.RETIRED)
        await ledger.record("project", "P1", LedgerAction.CREATED)
        await test_session.commit()

        history = await get_records_for_entity(test_session, "credit", "CR-1")
        recent = await get_recent_records(test_session, limit=2)
        found = await get_record_by_hash(test_session, retired.tx_hash)

        assert [r.tx_hash for r in history] == [created.tx_hash, retired.tx_hash]
        assert [r.entity_id for r in recent] == ["P1", "CR-1"]
        assert found.action == LedgerAction.RETIRED

    @pytest.mark.asyncio
    async def test_project_lifecycle_reaches_database(self, test_session, verified_project):
        from app.handlers.credits import issue_credits, retire_credit

        ledger = DatabaseLedger(test_session)
        credit = await issue_credits(
            test_session, "KEN-2023-0045", "2023", 100, "developer", ledger=ledger
        )
        await retire_credit(test_session, credit.id, ledger=ledger)

        records = await get_records_for_entity(test_session, "credit", credit.serial_number)

        assert [r.action for r in records] == [LedgerAction.CREATED, LedgerAction.RETIRED]
