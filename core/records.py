"""
房間內的資料結構（存進 store 的 document 形狀）

Room 擁有所有子結構，不跨房間共用。
寫入 store 前一律 dump(mode="json")，讀出時再 model_validate 回來。
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from database import get_settings
from models import Phase, GameMode, SelectionMethod


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoomSettings(BaseModel):
    game_mode: GameMode = GameMode.QUICK
    vibe: str = "popular"
    candidate_count: int = Field(default=10, ge=1, le=100)
    voting_timeout_seconds: int = Field(
        default_factory=lambda: get_settings().default_voting_timeout_seconds, ge=1
    )
    allow_late_join: bool = True
    anonymous_votes: bool = False


class User(BaseModel):
    id: str
    name: str
    is_host: bool = False
    joined_at: datetime = Field(default_factory=utcnow)


class Candidate(BaseModel):
    """候選電影：id 之外的內容（片名、海報...）引擎不解讀"""
    id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    added_at: datetime = Field(default_factory=utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # 片庫的 id 常是整數，store 的 key 一律用字串
        return str(value) if value is not None else value

    @classmethod
    def from_client(cls, raw: Dict[str, Any]) -> "Candidate":
        payload = {k: v for k, v in raw.items() if k not in ("id", "added_at")}
        return cls(id=raw["id"], payload=payload)


class VoteRecord(BaseModel):
    """
    單一電影的投票紀錄

    不變式：yes_count + no_count == len(choices)
    """
    yes_count: int = 0
    no_count: int = 0
    choices: Dict[str, bool] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.yes_count + self.no_count


class GameState(BaseModel):
    phase: Phase = Phase.LOBBY
    current_candidate_index: Optional[int] = None
    current_candidate_id: Optional[str] = None
    round: int = 0
    voting_started_at: Optional[datetime] = None
    reveal_started_at: Optional[datetime] = None


class SelectedCandidate(BaseModel):
    id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    yes_votes: int = 0
    no_votes: int = 0
    selected_at: datetime = Field(default_factory=utcnow)
    selection_method: SelectionMethod
    selected_by: Optional[str] = None


class Room(BaseModel):
    code: str
    created_at: datetime = Field(default_factory=utcnow)
    creator: str
    active: bool = True
    closed_at: Optional[datetime] = None
    settings: RoomSettings = Field(default_factory=RoomSettings)
    filters: Dict[str, Any] = Field(default_factory=dict)
    game_state: GameState = Field(default_factory=GameState)
    users: Dict[str, User] = Field(default_factory=dict)
    movies: Dict[str, Candidate] = Field(default_factory=dict)
    votes: Dict[str, VoteRecord] = Field(default_factory=dict)
    movie_order: List[str] = Field(default_factory=list)
    selected_movie: Optional[SelectedCandidate] = None

    def ordered_candidate_ids(self) -> List[str]:
        """movie_order 的順序；不在 order 內的電影依加入順序排在後面"""
        ordered = [cid for cid in self.movie_order if cid in self.movies]
        seen = set(ordered)
        ordered.extend(cid for cid in self.movies if cid not in seen)
        return ordered

    def snapshot(self) -> Dict[str, Any]:
        """對外輸出的房間內容；anonymous_votes 時拿掉每個人的投票選擇"""
        data = self.model_dump(mode="json")
        if self.settings.anonymous_votes:
            for record in data["votes"].values():
                record["choices"] = {}
        return data
