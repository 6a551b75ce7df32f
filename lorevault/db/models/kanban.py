from sqlalchemy import Column, ForeignKey, Integer, String, Text

from lorevault.db.base import Base


class Board(Base):
    __tablename__ = "boards"

    id = Column(String, primary_key=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(50), nullable=False, default="kanban")


class BoardColumn(Base):
    __tablename__ = "board_columns"

    id = Column(String, primary_key=True)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)


class Card(Base):
    __tablename__ = "cards"

    id = Column(String, primary_key=True)
    column_id = Column(String, ForeignKey("board_columns.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    priority = Column(String(50), nullable=False, default="normal")
