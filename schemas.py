"""
API request / response schemas
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models import Phase
from core.records import GameState, RoomSettings, SelectedCandidate, User


# ============ Requests ============

class RoomCreate(BaseModel):
    creator_name: Optional[Any] = None
    filters: Dict[str, Any] = Field(default_factory=dict)
    settings: Optional[RoomSettings] = None


class RoomJoin(BaseModel):
    user_name: Optional[Any] = None


class HostAction(BaseModel):
    user_id: str


class MoviesAdd(BaseModel):
    user_id: str
    movies: List[Any]


class VoteSubmit(BaseModel):
    user_id: str
    movie_id: Any
    # 接受 true/false、"yes"/"no"、1/0
    vote: bool


class MovieSelect(BaseModel):
    user_id: str
    movie_id: Any


class DecideRequest(BaseModel):
    user_id: str


# ============ Responses ============

class RoomCreatedResponse(BaseModel):
    room_code: str
    user_id: str
    room: Dict[str, Any]


class RoomJoinedResponse(BaseModel):
    room_code: str
    user: User
    room: Dict[str, Any]


class MoviesAddedResponse(BaseModel):
    added_movies: int


class VoteCounts(BaseModel):
    yes: int
    no: int
    total: int


class VoteResponse(BaseModel):
    movie_id: str
    current_votes: VoteCounts
    all_voted: bool
    game_state: GameState


class RoomStateResponse(BaseModel):
    room_code: str
    active: bool
    phase: Phase
    game_state: GameState
    member_count: int
    current_votes: Optional[VoteCounts] = None
    voted_user_ids: List[str] = Field(default_factory=list)
    selected_movie: Optional[SelectedCandidate] = None


class TimeoutCheckResponse(BaseModel):
    revealed: bool
    game_state: GameState


class SelectionResponse(BaseModel):
    selected_movie: SelectedCandidate


class StatusResponse(BaseModel):
    status: str

