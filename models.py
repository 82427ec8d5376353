"""
資料模型

- StoredRoom：每個房間一筆 row，整個房間狀態以 JSON document 存放
- Enum：遊戲階段、遊戲模式、選片方式
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
import enum

from database import Base


class Phase(str, enum.Enum):
    """房間的遊戲階段"""
    LOBBY = "lobby"
    VOTING = "voting"
    REVEAL = "reveal"
    RESULTS = "results"
    SELECTED = "selected"


class GameMode(str, enum.Enum):
    QUICK = "quick"
    FULL = "full"


class SelectionMethod(str, enum.Enum):
    VOTE = "vote"
    ROULETTE = "roulette"


class StoredRoom(Base):
    """房間 document（以 room code 為 primary key）"""
    __tablename__ = "rooms"

    code = Column(String(6), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StoredRoom {self.code}>"
