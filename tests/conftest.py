"""
測試共用的 fixtures

- store 一律用 InMemoryRoomStore
- lobby：Host Alice + Bob，已加入三部電影
- voting：同一個房間，已經開始投票
"""
import pytest

from database import Settings
from core.store import InMemoryRoomStore
from core.room_manager import RoomManager
from core.round_manager import RoundManager
from core.result_manager import ResultManager


MOVIES = [
    {"id": "A", "title": "Alien", "posterPath": "/a.jpg"},
    {"id": "B", "title": "Blade Runner", "posterPath": "/b.jpg"},
    {"id": "C", "title": "Casablanca", "posterPath": "/c.jpg"},
]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        room_code_max_attempts=10,
        max_name_length=50,
        default_voting_timeout_seconds=30,
        majority_threshold=0.5,
    )


@pytest.fixture
def store() -> InMemoryRoomStore:
    """A fresh in-memory store per test."""
    return InMemoryRoomStore()


@pytest.fixture
def room_manager(store, settings) -> RoomManager:
    return RoomManager(store, settings)


@pytest.fixture
def round_manager(store, settings) -> RoundManager:
    return RoundManager(store, settings)


@pytest.fixture
def result_manager(store, settings) -> ResultManager:
    return ResultManager(store, settings)


@pytest.fixture
def lobby(room_manager):
    """Room with a host, one guest and movies A, B, C still in the lobby."""
    room, host = room_manager.create_room("Alice")
    _, guest = room_manager.join_room(room.code, "Bob")
    room_manager.add_candidates(room.code, host.id, [dict(m) for m in MOVIES])
    return room.code, host, guest


@pytest.fixture
def voting(lobby, room_manager):
    """Same room as `lobby`, with the game started (voting on A)."""
    code, host, guest = lobby
    room_manager.start_game(code, host.id)
    return code, host, guest
