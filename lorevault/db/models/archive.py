from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from lorevault.db.base import Base, epoch_now


class TrashEntry(Base):
    __tablename__ = "trash_entry"
    __table_args__ = (Index("idx_trash_target", "target_type", "target_id"),)

    id = Column(String, primary_key=True)
    deleted_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    target_type = Column(String(50), nullable=False)
    target_id = Column(String, nullable=False)
    parent_type = Column(String(50), nullable=True)
    parent_id = Column(String, nullable=True, index=True)
    display_name = Column(String(255), nullable=False, default="")
    display_info = Column(Text, nullable=True)
    payload_json = Column(Text, nullable=False, default="{}")


class UniverseSnapshot(Base):
    __tablename__ = "universe_snapshots"
    __table_args__ = (Index("idx_universe_snapshots_universe_created", "universe_id", "created_at"),)

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    # Размер несжатого payload
    size_bytes = Column(Integer, nullable=False, default=0)
    compressed_bytes = Column(Integer, nullable=False, default=0)
    compressed_b64 = Column(Text, nullable=False)


class RelationshipType(Base):
    __tablename__ = "relationship_types"

    id = Column(String, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    directed = Column(Boolean, nullable=False, default=False)


class Relationship(Base):
    __tablename__ = "relationships"
    __table_args__ = (
        Index("idx_relationships_from", "from_type", "from_id"),
        Index("idx_relationships_to", "to_type", "to_id"),
    )

    id = Column(String, primary_key=True)
    relationship_type_id = Column(
        String, ForeignKey("relationship_types.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    from_type = Column(String(50), nullable=False)
    from_id = Column(String, nullable=False)
    to_type = Column(String(50), nullable=False)
    to_id = Column(String, nullable=False)
    note = Column(Text, nullable=False, default="")
    created_at = Column(Integer, nullable=False, default=epoch_now)


class AuditLog(Base):
    __tablename__ = "audit_log"
    __table_args__ = (Index("idx_audit_log_entity", "entity_type", "entity_id"),)

    id = Column(String, primary_key=True)
    ts = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String, nullable=False)
    details_json = Column(Text, nullable=False, default="")


class DbMeta(Base):
    __tablename__ = "db_meta"

    id = Column(Integer, primary_key=True)
    schema_version = Column(Integer, nullable=False, default=10)
    container_kind = Column(String(50), nullable=False, default="tas_studio")
    enabled_capabilities_json = Column(Text, nullable=False)
    created_at = Column(Integer, nullable=False, default=epoch_now)
    app_version = Column(String(50), nullable=False, default="")
