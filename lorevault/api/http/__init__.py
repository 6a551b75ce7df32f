from lorevault.api.http.health import router as health_router
from lorevault.api.http.trash import router as trash_router
from lorevault.api.http.entities import router as entities_router
from lorevault.api.http.snapshots import router as snapshots_router
from lorevault.api.http.relationships import router as relationships_router
from lorevault.api.http.relationships import types_router as relationship_types_router
from lorevault.api.http.audit import router as audit_router

__all__ = [
    "health_router",
    "trash_router",
    "entities_router",
    "snapshots_router",
    "relationships_router",
    "relationship_types_router",
    "audit_router"
]
