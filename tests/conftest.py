"""
Shared fixtures: a fresh SQLite project file per test and a small seeded world.

World layout:
    universe U1
        location L1
            location L2 (nested)
        creature B1 (home L2), creature B2
        era E1, event EV1 (at L1)
        novel N1
            chapter C1 (pos 0): scenes S1 (pos 0), S2 (pos 1)
            chapter C2 (pos 1): scene S3 (pos 0)
    universe U2
        location L9
    board BD1
        column COL1 (pos 0): cards K1 (pos 0), K2 (pos 1)
        column COL2 (pos 1)
"""

import httpx
import pytest_asyncio
from sqlalchemy import insert

from lorevault.core.db import build_engine, build_session_factory, get_db, init_models
from lorevault.domains.graph.entities import EntityKind, entity_graph

WORLD_ROWS = [
    (EntityKind.UNIVERSE, {"id": "U1", "name": "Aster", "description": "Main world"}),
    (EntityKind.UNIVERSE, {"id": "U2", "name": "Bramble"}),
    (EntityKind.LOCATION, {"id": "L1", "universe_id": "U1", "name": "Harbor", "kind": "city"}),
    (EntityKind.LOCATION, {"id": "L2", "universe_id": "U1", "parent_id": "L1", "name": "Docks"}),
    (EntityKind.LOCATION, {"id": "L9", "universe_id": "U2", "name": "Thicket"}),
    (EntityKind.CREATURE, {
        "id": "B1", "universe_id": "U1", "name": "Gull Drake",
        "danger": "low", "home_location_id": "L2"
    }),
    (EntityKind.CREATURE, {"id": "B2", "universe_id": "U1", "name": "Reef Wyrm", "archived": True}),
    (EntityKind.ERA, {"id": "E1", "universe_id": "U1", "name": "First Tide", "start_year": -300, "end_year": 12}),
    (EntityKind.EVENT, {"id": "EV1", "universe_id": "U1", "title": "Harbor fire", "year": 7, "location_id": "L1"}),
    (EntityKind.NOVEL, {"id": "N1", "universe_id": "U1", "title": "Salt", "created_at": 1700000000, "updated_at": 1700000500}),
    (EntityKind.CHAPTER, {"id": "C1", "novel_id": "N1", "title": "Arrival", "position": 0, "created_at": 1700000100, "updated_at": 1700000100}),
    (EntityKind.CHAPTER, {"id": "C2", "novel_id": "N1", "title": "Storm", "position": 1, "created_at": 1700000200, "updated_at": 1700000200}),
    (EntityKind.SCENE, {"id": "S1", "chapter_id": "C1", "title": "Pier", "body": "Fog.", "position": 0, "word_count": 1, "created_at": 1700000300, "updated_at": 1700000300}),
    (EntityKind.SCENE, {"id": "S2", "chapter_id": "C1", "title": "Market", "body": "Crowds gather.", "position": 1, "word_count": 2, "created_at": 1700000300, "updated_at": 1700000300}),
    (EntityKind.SCENE, {"id": "S3", "chapter_id": "C2", "title": "Squall", "position": 0, "created_at": 1700000400, "updated_at": 1700000400}),
    (EntityKind.BOARD, {"id": "BD1", "name": "Drafting"}),
    (EntityKind.COLUMN, {"id": "COL1", "board_id": "BD1", "name": "Todo", "position": 0}),
    (EntityKind.COLUMN, {"id": "COL2", "board_id": "BD1", "name": "Done", "position": 1}),
    (EntityKind.CARD, {"id": "K1", "column_id": "COL1", "title": "Outline act one", "position": 0}),
    (EntityKind.CARD, {"id": "K2", "column_id": "COL1", "title": "Map the harbor", "position": 1, "priority": "high"}),
]


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh project database file per test."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'project.db'}")
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def world(session_factory):
    """Seed the world described in the module docstring."""
    async with session_factory() as seed_session:
        for kind, values in WORLD_ROWS:
            await seed_session.execute(insert(entity_graph.table_for(kind)).values(**values))
        await seed_session.commit()


@pytest_asyncio.fixture
async def session(session_factory, world):
    async with session_factory() as test_session:
        yield test_session


@pytest_asyncio.fixture
async def client(session_factory, world):
    """HTTP client bound to the test database."""
    from lorevault.main import app

    async def override_get_db():
        async with session_factory() as api_session:
            yield api_session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
