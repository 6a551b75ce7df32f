from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text

from lorevault.db.base import Base, epoch_now


class Novel(Base):
    __tablename__ = "novels"

    id = Column(String, primary_key=True)
    universe_id = Column(String, ForeignKey("universes.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    synopsis = Column(Text, nullable=False, default="")
    status = Column(String(50), nullable=False, default="draft")
    created_at = Column(Integer, nullable=False, default=epoch_now)
    updated_at = Column(Integer, nullable=False, default=epoch_now)


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (Index("idx_chapters_novel_pos", "novel_id", "position"),)

    id = Column(String, primary_key=True)
    novel_id = Column(String, ForeignKey("novels.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    synopsis = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="draft")
    created_at = Column(Integer, nullable=False, default=epoch_now)
    updated_at = Column(Integer, nullable=False, default=epoch_now)


class Scene(Base):
    __tablename__ = "scenes"
    __table_args__ = (Index("idx_scenes_chapter_pos", "chapter_id", "position"),)

    id = Column(String, primary_key=True)
    chapter_id = Column(String, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="draft")
    word_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Integer, nullable=False, default=epoch_now)
    updated_at = Column(Integer, nullable=False, default=epoch_now)
