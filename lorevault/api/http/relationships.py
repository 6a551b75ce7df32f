from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.api.http.errors import to_http
from lorevault.core.db import get_db, unit_of_work
from lorevault.core.exceptions import VaultError
from lorevault.domains.relationships.schemas import (
    RelationshipCreate, RelationshipListResponse, RelationshipResponse,
    RelationshipTypeCreate, RelationshipTypeResponse, relationship_response
)
from lorevault.domains.relationships.services import RelationshipService

router = APIRouter(prefix="/relationships", tags=["relationships"])
types_router = APIRouter(prefix="/relationship-types", tags=["relationships"])


@types_router.post("/", response_model=RelationshipTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_relationship_type(type_data: RelationshipTypeCreate, db: AsyncSession = Depends(get_db)):
    """Создание вида связи"""
    try:
        async with unit_of_work(db):
            relationship_type = await RelationshipService(db).create_type(
                type_data.name, directed=type_data.directed, description=type_data.description
            )
    except VaultError as e:
        raise to_http(e)
    return RelationshipTypeResponse.model_validate(relationship_type)


@types_router.get("/", response_model=List[RelationshipTypeResponse])
async def list_relationship_types(db: AsyncSession = Depends(get_db)):
    types = await RelationshipService(db).list_types()
    return [RelationshipTypeResponse.model_validate(t) for t in types]


@types_router.delete("/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relationship_type(type_id: str, db: AsyncSession = Depends(get_db)):
    """Удаление неиспользуемого вида связи"""
    try:
        async with unit_of_work(db):
            await RelationshipService(db).delete_type(type_id)
    except VaultError as e:
        raise to_http(e)


@router.post("/", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
async def link_entities(relationship_data: RelationshipCreate, db: AsyncSession = Depends(get_db)):
    """Создание ребра между сущностями"""
    try:
        async with unit_of_work(db):
            relationship = await RelationshipService(db).link(
                relationship_data.relationship_type_id,
                relationship_data.from_type.value,
                relationship_data.from_id,
                relationship_data.to_type.value,
                relationship_data.to_id,
                note=relationship_data.note
            )
    except VaultError as e:
        raise to_http(e)
    return relationship_response(relationship)


@router.get("/", response_model=RelationshipListResponse)
async def query_relationships(
    entity_type: str = Query(...),
    entity_id: str = Query(...),
    relationship_type_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Ребра сущности в обоих направлениях"""
    try:
        relationships = await RelationshipService(db).query(entity_type, entity_id, relationship_type_id)
    except VaultError as e:
        raise to_http(e)
    return RelationshipListResponse(
        relationships=[relationship_response(r, viewer=(entity_type, entity_id)) for r in relationships],
        total=len(relationships)
    )


@router.get("/dangling", response_model=RelationshipListResponse)
async def dangling_relationships(db: AsyncSession = Depends(get_db)):
    """Ребра с исчезнувшими концами"""
    relationships = await RelationshipService(db).find_dangling()
    return RelationshipListResponse(
        relationships=[relationship_response(r) for r in relationships],
        total=len(relationships)
    )


@router.delete("/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_entities(relationship_id: str, db: AsyncSession = Depends(get_db)):
    try:
        async with unit_of_work(db):
            await RelationshipService(db).unlink(relationship_id)
    except VaultError as e:
        raise to_http(e)
