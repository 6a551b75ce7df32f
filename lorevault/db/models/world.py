from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from lorevault.db.base import Base


class Universe(Base):
    __tablename__ = "universes"

    id = Column(String, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    archived = Column(Boolean, nullable=False, default=False)


class Location(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False, index=True)
    # Вложенная локация принадлежит родительской локации
    parent_id = Column(String, ForeignKey("locations.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    kind = Column(String(100), nullable=False, default="")


class BestiaryEntry(Base):
    __tablename__ = "bestiary_entries"

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(100), nullable=False, default="")
    habitat = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    danger = Column(String(100), nullable=False, default="")
    home_location_id = Column(String, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)


class TimelineEra(Base):
    __tablename__ = "timeline_eras"

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    start_year = Column(Integer, nullable=False, default=0)
    end_year = Column(Integer, nullable=True)
    color = Column(String(7), nullable=False, default="#cccccc")


class TimelineEvent(Base):
    __tablename__ = "timeline_events"

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    year = Column(Integer, nullable=False, default=0)
    display_date = Column(String(100), nullable=False, default="")
    importance = Column(String(50), nullable=False, default="normal")
    kind = Column(String(50), nullable=False, default="event")
    color = Column(String(7), nullable=False, default="#3498db")
    location_id = Column(String, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
