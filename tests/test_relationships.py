"""
Relationship Tests
==================

Typed edges between arbitrary entities, their symmetry rules and their
survival through trash, restore and purge.
"""

import pytest

from lorevault.core.db import unit_of_work
from lorevault.core.exceptions import Conflict, InvalidOperation, NotFound
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.domains.graph.entities import EntityKind
from lorevault.domains.relationships.entities import Relationship
from lorevault.domains.relationships.services import RelationshipService
from lorevault.domains.trash.services import PurgeService, TrashService


async def create_type(session, name, directed=False):
    async with unit_of_work(session):
        return await RelationshipService(session).create_type(name, directed=directed)


async def link(session, type_id, from_ref, to_ref, note=""):
    async with unit_of_work(session):
        return await RelationshipService(session).link(
            type_id, from_ref[0], from_ref[1], to_ref[0], to_ref[1], note=note
        )


class TestRelationshipTypes:

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, session):
        await create_type(session, "ally of")
        with pytest.raises(Conflict):
            await create_type(session, "ally of")

    @pytest.mark.asyncio
    async def test_blank_name_is_invalid(self, session):
        with pytest.raises(InvalidOperation):
            await create_type(session, "   ")

    @pytest.mark.asyncio
    async def test_type_in_use_cannot_be_deleted(self, session):
        habitat = await create_type(session, "habitat", directed=True)
        rel = await link(session, habitat.id, ("creature", "B1"), ("location", "L1"))

        with pytest.raises(Conflict):
            async with unit_of_work(session):
                await RelationshipService(session).delete_type(habitat.id)

        async with unit_of_work(session):
            await RelationshipService(session).unlink(rel.id)
            await RelationshipService(session).delete_type(habitat.id)

        assert await RelationshipService(session).list_types() == []


class TestLinking:

    @pytest.mark.asyncio
    async def test_link_requires_existing_endpoints(self, session):
        habitat = await create_type(session, "habitat", directed=True)
        with pytest.raises(NotFound):
            await link(session, habitat.id, ("creature", "B1"), ("location", "nowhere"))
        with pytest.raises(NotFound):
            await link(session, "rt-missing", ("creature", "B1"), ("location", "L1"))
        with pytest.raises(InvalidOperation):
            await link(session, habitat.id, ("spaceship", "X"), ("location", "L1"))

    @pytest.mark.asyncio
    async def test_undirected_edges_are_symmetric(self, session):
        ally = await create_type(session, "ally of")
        rel = await link(session, ally.id, ("creature", "B1"), ("creature", "B2"))

        with pytest.raises(Conflict):
            await link(session, ally.id, ("creature", "B2"), ("creature", "B1"))

        from_b2 = await RelationshipService(session).query("creature", "B2")
        assert [r.id for r in from_b2] == [rel.id]
        assert from_b2[0].other_endpoint("creature", "B2") == ("creature", "B1")
        assert from_b2[0].directed is False

    @pytest.mark.asyncio
    async def test_directed_edges_keep_direction(self, session):
        located = await create_type(session, "located in", directed=True)
        forward = await link(session, located.id, ("creature", "B1"), ("location", "L1"))
        backward = await link(session, located.id, ("location", "L1"), ("creature", "B1"))

        with pytest.raises(Conflict):
            await link(session, located.id, ("creature", "B1"), ("location", "L1"))

        edges = await RelationshipService(session).query("location", "L1")
        assert {r.id for r in edges} == {forward.id, backward.id}

    @pytest.mark.asyncio
    async def test_query_filters_by_type(self, session):
        ally = await create_type(session, "ally of")
        habitat = await create_type(session, "habitat", directed=True)
        await link(session, ally.id, ("creature", "B1"), ("creature", "B2"))
        home = await link(session, habitat.id, ("creature", "B1"), ("location", "L2"))

        edges = await RelationshipService(session).query("creature", "B1", habitat.id)
        assert [r.id for r in edges] == [home.id]
        assert edges[0].type_name == "habitat"

    @pytest.mark.asyncio
    async def test_unlink_missing_edge(self, session):
        with pytest.raises(NotFound):
            async with unit_of_work(session):
                await RelationshipService(session).unlink("rel-missing")


class TestRelationshipsAndTrash:
    """Edges travel with the trash payload."""

    @pytest.mark.asyncio
    async def test_habitat_edge_survives_trash_and_purge_removes_it(self, session):
        habitat = await create_type(session, "habitat", directed=True)
        rel = await link(session, habitat.id, ("creature", "B1"), ("location", "L1"), note="nests")

        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.LOCATION, "L1")

        assert [r.id for r in entry.payload().relationships] == [rel.id]
        assert await RelationshipService(session).query("creature", "B1") == []

        async with unit_of_work(session):
            result = await TrashService(session).restore(entry.id)

        assert result.reattached_relationships == [rel.id]
        edges = await RelationshipService(session).query("creature", "B1")
        assert [(r.id, r.note, r.to_id) for r in edges] == [(rel.id, "nests", "L1")]

        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.LOCATION, "L1")

        assert await RelationshipService(session).query("creature", "B1") == []
        assert await TrashService(session).count() == 0

    @pytest.mark.asyncio
    async def test_edge_to_vanished_entity_is_skipped(self, session):
        habitat = await create_type(session, "habitat", directed=True)
        rel = await link(session, habitat.id, ("creature", "B1"), ("location", "L1"))

        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.LOCATION, "L1")
        async with unit_of_work(session):
            await PurgeService(session).purge(EntityKind.CREATURE, "B1")

        async with unit_of_work(session):
            result = await TrashService(session).restore(entry.id)

        assert result.skipped_relationships == [rel.id]
        assert result.reattached_relationships == []
        assert await RelationshipService(session).query("location", "L1") == []

    @pytest.mark.asyncio
    async def test_deleted_type_is_recreated_on_restore(self, session):
        ally = await create_type(session, "ally of")
        rel = await link(session, ally.id, ("creature", "B1"), ("creature", "B2"))

        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.CREATURE, "B2")
        async with unit_of_work(session):
            await RelationshipService(session).delete_type(ally.id)

        async with unit_of_work(session):
            result = await TrashService(session).restore(entry.id)

        assert result.reattached_relationships == [rel.id]
        restored_type = await RelationshipService(session).get_type(ally.id)
        assert restored_type.name == "ally of"
        assert restored_type.directed is False

    @pytest.mark.asyncio
    async def test_edges_inside_subtree_are_restored_once(self, session):
        located = await create_type(session, "located in", directed=True)
        rel = await link(session, located.id, ("location", "L2"), ("location", "L1"))

        async with unit_of_work(session):
            entry = await TrashService(session).move_to_trash(EntityKind.LOCATION, "L1")
        async with unit_of_work(session):
            await TrashService(session).restore(entry.id)

        edges = await RelationshipService(session).query("location", "L1")
        assert [r.id for r in edges] == [rel.id]


class TestDangling:

    @pytest.mark.asyncio
    async def test_find_dangling_reports_broken_edges(self, session):
        ally = await create_type(session, "ally of")
        healthy = await link(session, ally.id, ("creature", "B1"), ("creature", "B2"))

        async with unit_of_work(session):
            broken = await RelationshipRepository(session).create(
                Relationship.create_relationship(ally.id, "creature", "B1", "creature", "ghost")
            )

        dangling = await RelationshipService(session).find_dangling()
        assert [r.id for r in dangling] == [broken.id]
        assert healthy.id not in [r.id for r in dangling]
