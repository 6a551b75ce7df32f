from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lorevault.domains.graph.entities import EntityKind


class RelationshipTypeCreate(BaseModel):
    """Схема для создания вида связи"""
    name: str = Field(..., min_length=1, max_length=255)
    directed: bool = False
    description: str = ""

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class RelationshipTypeResponse(BaseModel):
    id: str
    name: str
    description: str
    directed: bool

    model_config = ConfigDict(from_attributes=True)


class RelationshipCreate(BaseModel):
    """Схема для создания ребра"""
    relationship_type_id: str
    from_type: EntityKind
    from_id: str
    to_type: EntityKind
    to_id: str
    note: str = ""


class RelationshipResponse(BaseModel):
    """Схема ребра с точки зрения запрашивающей сущности"""
    id: str
    relationship_type_id: str
    type_name: Optional[str] = None
    directed: Optional[bool] = None
    from_type: str
    from_id: str
    to_type: str
    to_id: str
    note: str
    created_at: int
    other_type: Optional[str] = None
    other_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RelationshipListResponse(BaseModel):
    relationships: List[RelationshipResponse]
    total: int


def relationship_response(relationship, viewer: Optional[Tuple[str, str]] = None) -> RelationshipResponse:
    """Сборка ответа; для viewer заполняется противоположный конец ребра"""
    response = RelationshipResponse.model_validate(relationship)
    if viewer is not None and relationship.involves(*viewer):
        response.other_type, response.other_id = relationship.other_endpoint(*viewer)
    return response
