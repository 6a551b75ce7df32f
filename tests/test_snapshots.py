"""
Snapshot Tests
==============

Full universe capture, compression and full-replace restore.
"""

import asyncio
import base64
import gzip
import json

import pytest
from sqlalchemy import insert, update

from lorevault.core.db import unit_of_work
from lorevault.core.exceptions import CapabilityDisabled, NotFound, SerializationFailure
from lorevault.db.models import UniverseSnapshot as UniverseSnapshotModel
from lorevault.db.repositories.meta_repository import MetaRepository
from lorevault.domains.graph.entities import EntityKind, entity_graph
from lorevault.domains.graph.writer import SubtreeWriter
from lorevault.domains.relationships.services import RelationshipService
from lorevault.domains.snapshots.services import SnapshotService
from lorevault.domains.trash.services import PurgeService, TrashService

from helpers import dump_tables, fetch_row


async def take_snapshot(session, universe_id="U1", name=""):
    async with unit_of_work(session):
        return await SnapshotService(session).capture(universe_id, name)


async def restore_snapshot(session, snapshot_id):
    async with unit_of_work(session):
        return await SnapshotService(session).restore(snapshot_id)


class TestSnapshotCapture:

    @pytest.mark.asyncio
    async def test_capture_records_sizes(self, session):
        snapshot = await take_snapshot(session, name="before the fire")

        assert snapshot.universe_id == "U1"
        assert snapshot.name == "before the fire"
        assert snapshot.compressed_bytes > 0

        raw = gzip.decompress(base64.b64decode(snapshot.compressed_b64))
        assert snapshot.size_bytes == len(raw)
        assert snapshot.compressed_bytes == len(base64.b64decode(snapshot.compressed_b64))

        payload = json.loads(raw)
        assert payload["root"] == {"kind": "universe", "id": "U1"}
        assert {row["id"] for row in payload["rows"]} == {
            "U1", "L1", "L2", "B1", "B2", "E1", "EV1", "N1", "C1", "C2", "S1", "S2", "S3"
        }

    @pytest.mark.asyncio
    async def test_list_get_delete(self, session):
        first = await take_snapshot(session, name="one")
        second = await take_snapshot(session, name="two")
        await take_snapshot(session, universe_id="U2")

        service = SnapshotService(session)
        assert [s.id for s in await service.list("U1")] == [second.id, first.id]
        assert (await service.get(first.id)).name == "one"

        async with unit_of_work(session):
            await SnapshotService(session).delete(first.id)

        assert [s.id for s in await service.list("U1")] == [second.id]
        with pytest.raises(NotFound):
            await service.get(first.id)

    @pytest.mark.asyncio
    async def test_missing_universe(self, session):
        with pytest.raises(NotFound):
            await take_snapshot(session, universe_id="U404")

    @pytest.mark.asyncio
    async def test_disabled_capability(self, session):
        async with unit_of_work(session):
            await MetaRepository(session).write(["worldbuilding", "trash"])
        with pytest.raises(CapabilityDisabled):
            await take_snapshot(session)


class TestSnapshotRestore:

    @pytest.mark.asyncio
    async def test_round_trip_without_changes(self, session):
        before = await dump_tables(session)
        snapshot = await take_snapshot(session)

        result = await restore_snapshot(session, snapshot.id)

        assert result.restored_rows == 13
        assert await dump_tables(session) == before

    @pytest.mark.asyncio
    async def test_restore_replaces_current_state(self, session):
        async with unit_of_work(session):
            relationships = RelationshipService(session)
            habitat = await relationships.create_type("habitat", directed=True)
            await relationships.link(habitat.id, "creature", "B1", "location", "L1")

        before = await dump_tables(session)
        snapshot = await take_snapshot(session)

        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.CREATURE, "B1")
            await session.execute(
                update(entity_graph.table_for(EntityKind.UNIVERSE))
                .where(entity_graph.table_for(EntityKind.UNIVERSE).c.id == "U1")
                .values(name="Renamed", archived=True)
            )
            await session.execute(
                insert(entity_graph.table_for(EntityKind.LOCATION))
                .values(id="L5", universe_id="U1", name="New quarter")
            )
            await session.execute(
                update(entity_graph.table_for(EntityKind.CHAPTER))
                .where(entity_graph.table_for(EntityKind.CHAPTER).c.id == "C1")
                .values(position=7)
            )

        result = await restore_snapshot(session, snapshot.id)

        assert await dump_tables(session) == before
        assert await fetch_row(session, EntityKind.LOCATION, "L5") is None
        assert len(result.reattached_relationships) == 1
        assert result.removed_rows == 12

    @pytest.mark.asyncio
    async def test_restore_does_not_touch_other_universes_or_trash(self, session):
        snapshot = await take_snapshot(session)
        async with unit_of_work(session):
            await TrashService(session).move_to_trash(EntityKind.LOCATION, "L9")

        await restore_snapshot(session, snapshot.id)

        assert await fetch_row(session, EntityKind.LOCATION, "L9") is None
        assert await TrashService(session).count() == 1

    @pytest.mark.asyncio
    async def test_corrupted_payload_rolls_back(self, session):
        snapshot = await take_snapshot(session)
        async with unit_of_work(session):
            await session.execute(
                update(UniverseSnapshotModel)
                .where(UniverseSnapshotModel.id == snapshot.id)
                .values(compressed_b64=base64.b64encode(b"not gzip").decode("ascii"))
            )

        before = await dump_tables(session)
        with pytest.raises(SerializationFailure):
            await restore_snapshot(session, snapshot.id)
        assert await dump_tables(session) == before

    @pytest.mark.asyncio
    async def test_snapshots_follow_universe_through_trash(self, session):
        snapshot = await take_snapshot(session, name="keep me")

        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.UNIVERSE, "U1")
        assert await SnapshotService(session).list("U1") == []

        async with unit_of_work(session):
            await TrashService(session).restore(entry.id)

        snapshots = await SnapshotService(session).list("U1")
        assert [(s.id, s.name) for s in snapshots] == [(snapshot.id, "keep me")]
        assert snapshots[0].compressed_b64 == snapshot.compressed_b64


class TestAttachedBoards:
    """PM boards linked to a universe travel with its snapshots."""

    async def _link_card_to_creature(self, session):
        async with unit_of_work(session):
            relationships = RelationshipService(session)
            tracks = await relationships.create_type("tracked by")
            return await relationships.link(tracks.id, "card", "K1", "creature", "B1")

    @pytest.mark.asyncio
    async def test_linked_board_is_captured(self, session):
        await self._link_card_to_creature(session)
        snapshot = await take_snapshot(session)

        payload = await SnapshotService(session).load_payload(snapshot)
        assert [row.id for row in payload.attached] == ["BD1", "COL1", "COL2", "K1", "K2"]
        assert [ref.id for ref in payload.attached_roots()] == ["BD1"]
        assert {row.id for row in payload.rows}.isdisjoint({"BD1", "K1"})

    @pytest.mark.asyncio
    async def test_card_changes_are_rolled_back(self, session):
        link = await self._link_card_to_creature(session)
        before = await dump_tables(session)
        snapshot = await take_snapshot(session)

        cards = entity_graph.table_for(EntityKind.CARD)
        async with unit_of_work(session):
            await session.execute(
                update(cards).where(cards.c.id == "K1").values(title="Rewritten", position=5)
            )
            await session.execute(
                update(cards).where(cards.c.id == "K2").values(column_id="COL2")
            )
            await session.execute(
                insert(cards).values(id="K3", column_id="COL1", title="Late idea", position=2)
            )

        result = await restore_snapshot(session, snapshot.id)

        assert await dump_tables(session) == before
        assert (await fetch_row(session, EntityKind.CARD, "K1"))["title"] == "Outline act one"
        assert await fetch_row(session, EntityKind.CARD, "K3") is None
        assert result.replaced_boards == ["BD1"]
        assert result.reattached_relationships == [link.id]
        assert result.removed_rows == 12 + 5
        assert result.restored_rows == 13 + 5

    @pytest.mark.asyncio
    async def test_deleted_board_is_recreated(self, session):
        await self._link_card_to_creature(session)
        before = await dump_tables(session)
        snapshot = await take_snapshot(session)

        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.BOARD, "BD1")

        await restore_snapshot(session, snapshot.id)

        assert await dump_tables(session) == before

    @pytest.mark.asyncio
    async def test_unlinked_board_is_left_alone(self, session):
        snapshot = await take_snapshot(session)
        cards = entity_graph.table_for(EntityKind.CARD)
        async with unit_of_work(session):
            await session.execute(update(cards).where(cards.c.id == "K1").values(title="Rewritten"))

        result = await restore_snapshot(session, snapshot.id)

        assert result.replaced_boards == []
        assert (await fetch_row(session, EntityKind.CARD, "K1"))["title"] == "Rewritten"


class TestInterruptedRestore:

    @pytest.mark.asyncio
    async def test_cancelled_restore_changes_nothing(self, session, monkeypatch):
        snapshot = await take_snapshot(session)
        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.NOVEL, "N1")
        before = await dump_tables(session)
        reached = asyncio.Event()

        async def stalled_reattach(self, records, report=None):
            reached.set()
            await asyncio.sleep(3600)

        monkeypatch.setattr(SubtreeWriter, "reattach_relationships", stalled_reattach)

        task = asyncio.create_task(restore_snapshot(session, snapshot.id))
        await reached.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await dump_tables(session) == before
        assert await fetch_row(session, EntityKind.NOVEL, "N1") is None
