"""
Tests for room lifecycle: create, join, add movies, start, close.
"""
import pytest

from models import Phase
from core.exceptions import (
    HostOnlyAction,
    InvalidState,
    InvalidStateTransition,
    RoomClosed,
    RoomCodeExhausted,
    RoomNotAcceptingPlayers,
    RoomNotFound,
    UserNotFound,
    ValidationError,
)
from core.records import RoomSettings
from core.room_manager import RoomManager
from core.store import InMemoryRoomStore, room_path


class ScriptedRandom:
    def __init__(self, codes):
        self._codes = list(codes)

    def choices(self, population, k):
        return list(self._codes.pop(0))


class LosesFirstRaceStore(InMemoryRoomStore):
    """Simulates another request grabbing the code between check and create."""

    def __init__(self):
        super().__init__()
        self.lost = False

    def create(self, path, value):
        if not self.lost:
            self.lost = True
            return False
        return super().create(path, value)


class CountingStore(InMemoryRoomStore):
    def __init__(self):
        super().__init__()
        self.reads = 0

    def read(self, path):
        self.reads += 1
        return super().read(path)


class TestCreateRoom:

    def test_creator_becomes_only_host(self, room_manager, store):
        room, host = room_manager.create_room("Alice", {"genre": 27})

        assert len(room.code) == 6
        assert host.is_host and host.name == "Alice"
        assert room.creator == "Alice"
        assert room.active
        assert room.filters == {"genre": 27}
        assert room.game_state.phase == Phase.LOBBY
        assert [u.id for u in room.users.values() if u.is_host] == [host.id]
        assert store.read(room_path(room.code, "users", host.id))["is_host"] is True

    def test_anonymous_creator(self, room_manager):
        room, host = room_manager.create_room()

        assert room.creator == "Anonymous"
        assert host.name == "Anonymous"

    def test_custom_settings(self, room_manager):
        room, _ = room_manager.create_room(
            "Alice", room_settings=RoomSettings(candidate_count=5, voting_timeout_seconds=10)
        )

        assert room_manager.get_room(room.code).settings.candidate_count == 5

    def test_long_name_rejected(self, room_manager):
        with pytest.raises(ValidationError):
            room_manager.create_room("x" * 51)

    def test_codes_are_unique(self, room_manager):
        codes = {room_manager.create_room("Alice")[0].code for _ in range(50)}
        assert len(codes) == 50

    def test_existing_code_is_skipped(self, store, settings):
        store.write(room_path("AAAAAA"), {"code": "AAAAAA"})
        manager = RoomManager(store, settings, rng=ScriptedRandom(["AAAAAA", "BBBBBB"]))

        room, _ = manager.create_room("Alice")

        assert room.code == "BBBBBB"
        assert store.read(room_path("AAAAAA")) == {"code": "AAAAAA"}

    def test_lost_creation_race_is_retried(self, settings):
        store = LosesFirstRaceStore()
        manager = RoomManager(store, settings, rng=ScriptedRandom(["AAAAAA", "BBBBBB"]))

        room, _ = manager.create_room("Alice")

        assert room.code == "BBBBBB"
        assert store.read(room_path("AAAAAA")) is None

    def test_code_retries_share_one_budget(self, settings):
        store = CountingStore()
        store.write(room_path("AAAAAA"), {"code": "AAAAAA"})
        manager = RoomManager(store, settings, rng=ScriptedRandom(["AAAAAA"] * 10))

        with pytest.raises(RoomCodeExhausted) as excinfo:
            manager.create_room("Alice")

        assert excinfo.value.attempts == 10
        assert store.reads == 10


class TestJoinRoom:

    def test_join_adds_member(self, room_manager):
        room, _ = room_manager.create_room("Alice")

        joined, user = room_manager.join_room(room.code.lower(), "Bob")

        assert not user.is_host
        assert user.id in joined.users
        assert len(room_manager.get_room(room.code).users) == 2

    def test_unnamed_guest(self, room_manager):
        room, _ = room_manager.create_room("Alice")

        _, user = room_manager.join_room(room.code)

        assert user.name == "Guest 1"

    def test_unknown_room(self, room_manager):
        with pytest.raises(RoomNotFound):
            room_manager.join_room("ZZZZZZ", "Bob")

    def test_join_during_voting_keeps_phase(self, voting, room_manager):
        code, _, _ = voting

        room_manager.join_room(code, "Carol")

        room = room_manager.get_room(code)
        assert room.game_state.phase == Phase.VOTING
        assert room.game_state.current_candidate_id == "A"

    def test_late_join_can_be_disabled(self, room_manager):
        room, host = room_manager.create_room(
            "Alice", room_settings=RoomSettings(allow_late_join=False)
        )
        room_manager.add_candidates(room.code, host.id, [{"id": "A"}])
        room_manager.start_game(room.code, host.id)

        with pytest.raises(RoomNotAcceptingPlayers):
            room_manager.join_room(room.code, "Bob")

    def test_closed_room(self, room_manager):
        room, host = room_manager.create_room("Alice")
        room_manager.close_room(room.code, host.id)

        with pytest.raises(RoomClosed):
            room_manager.join_room(room.code, "Bob")


class TestAddCandidates:

    def test_order_and_empty_vote_records(self, lobby, room_manager):
        code, _, _ = lobby
        room = room_manager.get_room(code)

        assert room.movie_order == ["A", "B", "C"]
        assert room.movies["B"].payload["title"] == "Blade Runner"
        assert all(room.votes[cid].total == 0 for cid in "ABC")

    def test_integer_ids_are_strings(self, room_manager):
        room, host = room_manager.create_room("Alice")

        room_manager.add_candidates(room.code, host.id, [{"id": 550, "title": "Fight Club"}])

        assert room_manager.get_room(room.code).movie_order == ["550"]

    def test_resent_movie_keeps_position(self, lobby, room_manager):
        code, host, _ = lobby

        added = room_manager.add_candidates(
            code, host.id, [{"id": "A", "title": "Aliens"}, {"id": "D", "title": "Dune"}]
        )

        room = room_manager.get_room(code)
        assert added == 1
        assert room.movie_order == ["A", "B", "C", "D"]
        assert room.movies["A"].payload["title"] == "Aliens"

    def test_only_host(self, lobby, room_manager):
        code, _, guest = lobby
        with pytest.raises(HostOnlyAction):
            room_manager.add_candidates(code, guest.id, [{"id": "D"}])

    def test_unknown_user(self, lobby, room_manager):
        code, _, _ = lobby
        with pytest.raises(UserNotFound):
            room_manager.add_candidates(code, "nobody", [{"id": "D"}])

    @pytest.mark.parametrize("movies", [[], [{"title": "no id"}], ["not a dict"]])
    def test_invalid_payloads(self, lobby, room_manager, movies):
        code, host, _ = lobby
        with pytest.raises(ValidationError):
            room_manager.add_candidates(code, host.id, movies)

    def test_pool_limit(self, room_manager):
        room, host = room_manager.create_room(
            "Alice", room_settings=RoomSettings(candidate_count=2)
        )

        with pytest.raises(ValidationError):
            room_manager.add_candidates(room.code, host.id, [{"id": "A"}, {"id": "B"}, {"id": "C"}])

    def test_candidate_views_degrade_on_enrichment_failure(self, lobby, store, settings):
        code, _, _ = lobby

        def enrich(candidate):
            if candidate.id == "B":
                raise RuntimeError("catalog unavailable")
            return {"runtime": 120}

        views = RoomManager(store, settings, enrich=enrich).list_candidates(code)

        assert [v["id"] for v in views] == ["A", "B", "C"]
        assert views[0]["runtime"] == 120
        assert "runtime" not in views[1]
        assert views[1]["title"] == "Blade Runner"


class TestStartGame:

    def test_start(self, lobby, room_manager):
        code, host, _ = lobby

        state = room_manager.start_game(code, host.id)

        assert state.phase == Phase.VOTING
        assert state.current_candidate_id == "A"
        assert state.round == 1
        assert state.voting_started_at is not None

    def test_needs_movies(self, room_manager):
        room, host = room_manager.create_room("Alice")
        with pytest.raises(InvalidState):
            room_manager.start_game(room.code, host.id)

    def test_only_host(self, lobby, room_manager):
        code, _, guest = lobby
        with pytest.raises(HostOnlyAction):
            room_manager.start_game(code, guest.id)

    def test_cannot_start_twice(self, voting, room_manager):
        code, host, _ = voting
        with pytest.raises(InvalidStateTransition):
            room_manager.start_game(code, host.id)


class TestCloseRoom:

    def test_close(self, lobby, room_manager, store):
        code, host, _ = lobby

        room = room_manager.close_room(code, host.id)

        assert not room.active
        assert room.closed_at is not None
        assert store.read(room_path(code, "active")) is False
        assert store.read(room_path(code)) is not None

    def test_close_is_idempotent(self, lobby, room_manager):
        code, host, _ = lobby
        first = room_manager.close_room(code, host.id)
        second = room_manager.close_room(code, host.id)

        assert second.closed_at == first.closed_at

    def test_only_host(self, lobby, room_manager):
        code, _, guest = lobby
        with pytest.raises(HostOnlyAction):
            room_manager.close_room(code, guest.id)
