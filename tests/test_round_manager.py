"""
Tests for voting rounds: votes, quorum, timeouts and advancing.
"""
from datetime import timedelta

import pytest

from models import Phase
from core.exceptions import (
    CandidateNotFound,
    HostOnlyAction,
    InvalidState,
    InvalidStateTransition,
    RoomClosed,
    UserNotFound,
)


class TestVote:

    def test_vote_counts(self, voting, round_manager):
        code, host, _ = voting

        outcome = round_manager.vote(code, host.id, "A", True)

        assert outcome.record.yes_count == 1
        assert outcome.record.no_count == 0
        assert not outcome.all_voted
        assert outcome.game_state.phase == Phase.VOTING

    def test_revote_yes_no_yes(self, voting, round_manager):
        code, host, _ = voting
        for value in (True, False, True):
            outcome = round_manager.vote(code, host.id, "A", value)

        room = round_manager.get_state(code)
        assert (room.votes["A"].yes_count, room.votes["A"].no_count) == (1, 0)
        assert outcome.record.choices == {host.id: True}

    def test_quorum_reveals(self, voting, round_manager):
        code, host, guest = voting

        first = round_manager.vote(code, host.id, "A", True)
        second = round_manager.vote(code, guest.id, "A", True)

        assert not first.all_voted
        assert second.all_voted
        assert second.game_state.phase == Phase.REVEAL
        assert second.game_state.reveal_started_at is not None

    def test_member_joining_mid_round_counts_toward_quorum(self, voting, round_manager, room_manager):
        code, host, guest = voting
        round_manager.vote(code, host.id, "A", True)
        _, late = room_manager.join_room(code, "Carol")

        outcome = round_manager.vote(code, guest.id, "A", False)
        assert not outcome.all_voted
        assert outcome.game_state.phase == Phase.VOTING

        outcome = round_manager.vote(code, late.id, "A", True)
        assert outcome.all_voted
        assert outcome.game_state.phase == Phase.REVEAL

    def test_revote_after_quorum_does_not_reveal_twice(self, voting, round_manager):
        code, host, guest = voting
        round_manager.vote(code, host.id, "A", True)
        revealed_at = round_manager.vote(code, guest.id, "A", True).game_state.reveal_started_at

        with pytest.raises(InvalidState):
            round_manager.vote(code, guest.id, "A", False)

        assert round_manager.get_state(code).game_state.reveal_started_at == revealed_at

    def test_unknown_user(self, voting, round_manager):
        code, _, _ = voting
        with pytest.raises(UserNotFound):
            round_manager.vote(code, "nobody", "A", True)

    def test_unknown_movie(self, voting, round_manager):
        code, host, _ = voting
        with pytest.raises(CandidateNotFound):
            round_manager.vote(code, host.id, "Z", True)

    def test_not_the_current_movie(self, voting, round_manager):
        code, host, _ = voting
        with pytest.raises(InvalidState):
            round_manager.vote(code, host.id, "B", True)

    def test_voting_in_lobby(self, lobby, round_manager):
        code, host, _ = lobby
        with pytest.raises(InvalidState):
            round_manager.vote(code, host.id, "A", True)

    def test_voting_in_closed_room(self, voting, round_manager, room_manager):
        code, host, _ = voting
        room_manager.close_room(code, host.id)
        with pytest.raises(RoomClosed):
            round_manager.vote(code, host.id, "A", True)


class TestTimeout:

    def test_signal_timeout(self, voting, round_manager):
        code, _, _ = voting

        state = round_manager.signal_timeout(code)

        assert state.phase == Phase.REVEAL
        assert state.current_candidate_id == "A"

    def test_signal_timeout_outside_voting(self, lobby, round_manager):
        code, _, _ = lobby
        with pytest.raises(InvalidState):
            round_manager.signal_timeout(code)

    def test_check_timeout_respects_deadline(self, voting, round_manager):
        code, _, _ = voting
        started = round_manager.get_state(code).game_state.voting_started_at

        assert not round_manager.check_timeout(code, now=started + timedelta(seconds=29))
        assert round_manager.get_state(code).game_state.phase == Phase.VOTING

        assert round_manager.check_timeout(code, now=started + timedelta(seconds=30))
        assert round_manager.get_state(code).game_state.phase == Phase.REVEAL

        # 已經 reveal 過，再檢查是 no-op
        assert not round_manager.check_timeout(code, now=started + timedelta(seconds=60))

    def test_check_timeout_outside_voting(self, lobby, round_manager):
        code, _, _ = lobby
        assert not round_manager.check_timeout(code)


class TestAdvance:

    def test_full_cycle_to_results(self, voting, round_manager):
        code, host, guest = voting

        for candidate_id in ("A", "B", "C"):
            state = round_manager.get_state(code).game_state
            assert state.phase == Phase.VOTING
            assert state.current_candidate_id == candidate_id
            round_manager.vote(code, host.id, candidate_id, True)
            round_manager.vote(code, guest.id, candidate_id, candidate_id != "C")
            state = round_manager.advance(code, host.id)

        assert state.phase == Phase.RESULTS
        assert state.current_candidate_id is None
        assert state.round == 3

    def test_advance_requires_reveal(self, voting, round_manager):
        code, host, _ = voting
        with pytest.raises(InvalidStateTransition):
            round_manager.advance(code, host.id)

    def test_only_host(self, voting, round_manager):
        code, _, guest = voting
        round_manager.signal_timeout(code)
        with pytest.raises(HostOnlyAction):
            round_manager.advance(code, guest.id)

    def test_current_record(self, voting, round_manager):
        code, host, _ = voting
        round_manager.vote(code, host.id, "A", False)

        record = round_manager.current_record(round_manager.get_state(code))

        assert record.no_count == 1
