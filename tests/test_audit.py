"""
Audit Tests
===========

Every mutating operation leaves exactly one audit record, and a broken
audit write never aborts the operation it describes.
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from lorevault.core.db import unit_of_work
from lorevault.core.exceptions import NotFound
from lorevault.core.logging import AUDIT_FALLBACK_LOGGER
from lorevault.db.repositories.audit_repository import AuditRepository
from lorevault.domains.audit.entities import AuditAction
from lorevault.domains.audit.services import AuditLogger
from lorevault.domains.graph.entities import EntityKind
from lorevault.domains.relationships.services import RelationshipService
from lorevault.domains.snapshots.services import SnapshotService
from lorevault.domains.trash.services import PurgeService, TrashService

from helpers import fetch_row


async def audit_entries(session, **filters):
    return await AuditLogger(session).query(**filters)


class TestAuditTrail:

    @pytest.mark.asyncio
    async def test_trash_and_restore_are_audited_once(self, session):
        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.CHAPTER, "C1")
        async with unit_of_work(session):
            await TrashService(session).restore(entry.id)

        entries = await audit_entries(session)
        assert [e.action for e in entries] == [
            AuditAction.TRASH_RESTORE, AuditAction.TRASH_MOVE_AND_DELETE
        ]
        for e in entries:
            assert (e.entity_type, e.entity_id) == ("chapter", "C1")
            assert e.details["trash_id"] == entry.id
        assert entries[0].details["rows"] == 3

    @pytest.mark.asyncio
    async def test_snapshot_operations_are_audited_once(self, session):
        async with unit_of_work(session):
            snapshot = await SnapshotService(session).capture("U1", "s")
        async with unit_of_work(session):
            await SnapshotService(session).restore(snapshot.id)
        async with unit_of_work(session):
            await SnapshotService(session).delete(snapshot.id)

        entries = await audit_entries(session, entity_type="universe", entity_id="U1")
        assert [e.action for e in entries] == [
            AuditAction.SNAPSHOT_DELETE, AuditAction.SNAPSHOT_RESTORE, AuditAction.SNAPSHOT_CREATE
        ]
        assert all(e.details["snapshot_id"] == snapshot.id for e in entries)

    @pytest.mark.asyncio
    async def test_purge_and_relationships_are_audited(self, session):
        async with unit_of_work(session):
            service = RelationshipService(session)
            ally = await service.create_type("ally of")
            rel = await service.link(ally.id, "creature", "B1", "creature", "B2")
        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.CREATURE, "B2")

        purge = await audit_entries(session, action=AuditAction.ENTITY_PURGE)
        assert [(e.entity_type, e.entity_id) for e in purge] == [("creature", "B2")]
        assert purge[0].details["relationships"] == 1

        link = await audit_entries(session, action=AuditAction.RELATIONSHIP_LINK)
        assert [e.entity_id for e in link] == [rel.id]
        assert len(await audit_entries(session, action=AuditAction.RELATIONSHIP_TYPE_CREATE)) == 1

    @pytest.mark.asyncio
    async def test_failed_operation_leaves_no_audit_record(self, session):
        with pytest.raises(NotFound):
            async with unit_of_work(session):
                await TrashService(session).move_to_trash(EntityKind.CHAPTER, "C404")
        assert await audit_entries(session) == []

    @pytest.mark.asyncio
    async def test_query_limit(self, session):
        for chapter_id in ("C1", "C2"):
            async with unit_of_work(session):
                await TrashService(session).move_to_trash(EntityKind.CHAPTER, chapter_id)
        assert len(await audit_entries(session, limit=1)) == 1


class TestDegradedAudit:

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_abort_operation(self, session, monkeypatch, caplog):
        async def broken_append(self, entry):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AuditRepository, "append", broken_append)
        degraded_before = AuditLogger.degraded_count

        with caplog.at_level(logging.WARNING, logger=AUDIT_FALLBACK_LOGGER):
            async with unit_of_work(session):
                entry = await TrashService(session).move_to_trash(EntityKind.CHAPTER, "C1")

        assert AuditLogger.degraded_count == degraded_before + 1
        assert await fetch_row(session, EntityKind.CHAPTER, "C1") is None
        assert (await TrashService(session).get_entry(entry.id)).target_id == "C1"
        assert any(
            r.name == AUDIT_FALLBACK_LOGGER and "trash_move_and_delete" in r.getMessage()
            for r in caplog.records
        )

        monkeypatch.undo()
        assert await audit_entries(session) == []

    @pytest.mark.asyncio
    async def test_record_returns_none_when_degraded(self, session, monkeypatch):
        async def broken_append(self, entry):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("database is locked"))

        monkeypatch.setattr(AuditRepository, "append", broken_append)
        async with unit_of_work(session):
            assert await AuditLogger(session).record("manual", "universe", "U1") is None
