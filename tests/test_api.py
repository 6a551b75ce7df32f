"""
HTTP API Tests
==============

Routers map service results to responses and domain errors to status codes.
"""

import pytest


class TestTrashApi:

    @pytest.mark.asyncio
    async def test_delete_list_restore(self, client):
        response = await client.delete("/entities/chapter/C1")
        assert response.status_code == 200
        trash_id = response.json()["id"]
        assert response.json()["parent_id"] == "N1"

        response = await client.get("/trash/", params={"target_type": "chapter"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert [e["id"] for e in body["entries"]] == [trash_id]

        response = await client.get(f"/trash/{trash_id}")
        assert response.status_code == 200
        assert [row["id"] for row in response.json()["payload"]["rows"]] == ["C1", "S1", "S2"]

        response = await client.post(f"/trash/{trash_id}/restore", json={"position_policy": "fail"})
        assert response.status_code == 200
        assert response.json()["root_id"] == "C1"
        assert response.json()["position"] == 0

        response = await client.post(f"/trash/{trash_id}/restore")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NotFound"

    @pytest.mark.asyncio
    async def test_filtered_total(self, client):
        await client.delete("/entities/chapter/C1")
        await client.delete("/entities/card/K1")

        body = (await client.get("/trash/", params={"target_type": "card"})).json()
        assert [e["target_id"] for e in body["entries"]] == ["K1"]
        assert body["total"] == 1

        body = (await client.get("/trash/", params={"parent_id": "N1", "per_page": 1})).json()
        assert body["total"] == 1
        assert (await client.get("/trash/")).json()["total"] == 2

    @pytest.mark.asyncio
    async def test_error_mapping(self, client):
        response = await client.delete("/entities/spaceship/X1")
        assert response.status_code == 400

        response = await client.delete("/entities/chapter/missing")
        assert response.status_code == 404

        response = await client.post("/trash/missing/restore")
        assert response.status_code == 404

        response = await client.post("/trash/any/restore", json={"orphan_policy": "guess"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_orphan_maps_to_conflict(self, client):
        trash_id = (await client.delete("/entities/chapter/C1")).json()["id"]
        await client.delete("/entities/novel/N1")

        response = await client.post(f"/trash/{trash_id}/restore", json={"orphan_policy": "fail"})
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "OrphanParent"
        assert response.json()["detail"]["parent_id"] == "N1"

    @pytest.mark.asyncio
    async def test_purge_empty_and_cleanup(self, client):
        response = await client.delete("/entities/board/BD1/purge")
        assert response.status_code == 200
        assert response.json()["removed_rows"] == 5

        await client.delete("/entities/chapter/C1")
        response = await client.post("/trash/cleanup", params={"days": 1})
        assert response.json()["removed"] == 0

        response = await client.delete("/trash/")
        assert response.json()["removed"] == 1
        assert (await client.get("/trash/")).json()["total"] == 0


class TestSnapshotApi:

    @pytest.mark.asyncio
    async def test_snapshot_lifecycle(self, client):
        response = await client.post("/snapshots/", json={"universe_id": "U1", "name": "draft"})
        assert response.status_code == 201
        snapshot = response.json()
        assert snapshot["size_bytes"] > 0
        assert "compressed_b64" not in snapshot

        listing = (await client.get("/snapshots/", params={"universe_id": "U1"})).json()
        assert listing["total"] == 1

        response = await client.post(f"/snapshots/{snapshot['id']}/restore")
        assert response.status_code == 200
        assert response.json()["restored_rows"] == 13

        response = await client.delete(f"/snapshots/{snapshot['id']}")
        assert response.status_code == 204
        assert (await client.get(f"/snapshots/{snapshot['id']}")).status_code == 404


class TestRelationshipApi:

    @pytest.mark.asyncio
    async def test_link_query_unlink(self, client):
        response = await client.post("/relationship-types/", json={"name": "ally of"})
        assert response.status_code == 201
        type_id = response.json()["id"]

        response = await client.post("/relationships/", json={
            "relationship_type_id": type_id,
            "from_type": "creature", "from_id": "B1",
            "to_type": "creature", "to_id": "B2"
        })
        assert response.status_code == 201
        rel_id = response.json()["id"]

        response = await client.post("/relationships/", json={
            "relationship_type_id": type_id,
            "from_type": "creature", "from_id": "B2",
            "to_type": "creature", "to_id": "B1"
        })
        assert response.status_code == 409

        body = (await client.get("/relationships/", params={"entity_type": "creature", "entity_id": "B2"})).json()
        assert body["total"] == 1
        assert (body["relationships"][0]["other_type"], body["relationships"][0]["other_id"]) == ("creature", "B1")

        assert (await client.delete(f"/relationship-types/{type_id}")).status_code == 409
        assert (await client.delete(f"/relationships/{rel_id}")).status_code == 204
        assert (await client.delete(f"/relationship-types/{type_id}")).status_code == 204

        assert (await client.get("/relationships/dangling")).json()["total"] == 0


class TestAuditApi:

    @pytest.mark.asyncio
    async def test_audit_feed(self, client):
        await client.delete("/entities/card/K2")

        response = await client.get("/audit/", params={"entity_type": "card"})
        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [(e["action"], e["entity_id"]) for e in entries] == [("trash_move_and_delete", "K2")]

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"
