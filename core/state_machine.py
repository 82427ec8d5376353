"""
遊戲階段狀態機：集中管理所有 game_state 的轉換

合法轉換：
    LOBBY   -> VOTING            Host 開始遊戲
    VOTING  -> REVEAL            全員投完 / 逾時
    REVEAL  -> VOTING | RESULTS  Host 推進（還有電影 / 沒有電影了）
    RESULTS -> SELECTED          輪盤或直接選定

每次轉換都是 game_state 這個 path 上的一次 transact：
只有在「目前階段仍是預期階段」時才寫入，
所以兩個請求同時觸發同一個轉換時，第二個會是無害的 no-op。
"""
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import logging

from models import Phase
from core.exceptions import InvalidStateTransition
from core.records import GameState
from core.store import RoomStore, room_path

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Phase.LOBBY: {Phase.VOTING},
    Phase.VOTING: {Phase.REVEAL},
    Phase.REVEAL: {Phase.VOTING, Phase.RESULTS},
    Phase.RESULTS: {Phase.SELECTED},
    Phase.SELECTED: set(),
}


class GameStateMachine:
    """game_state 的唯一寫入者"""

    def __init__(self, store: RoomStore):
        self._store = store

    @staticmethod
    def can_transition(current: Phase, target: Phase) -> bool:
        return target in TRANSITIONS[current]

    def _apply(
        self,
        code: str,
        expected: Phase,
        build: Callable[[GameState], Optional[GameState]]
    ) -> Tuple[bool, GameState]:
        """
        在 expected 階段時套用 build 產生的新狀態

        build 返回 None 代表條件不符，放棄寫入
        """
        def update(current):
            state = GameState.model_validate(current) if current else GameState()
            if state.phase != expected:
                return None
            new_state = build(state)
            if new_state is None:
                return None
            if not self.can_transition(state.phase, new_state.phase):
                raise InvalidStateTransition(
                    f"Cannot transition from {state.phase.value} to {new_state.phase.value}"
                )
            return new_state.model_dump(mode="json")

        committed, value = self._store.transact(room_path(code, "game_state"), update)
        state = GameState.model_validate(value) if value else GameState()
        return committed, state

    def start(self, code: str, movie_order: List[str], now: datetime) -> GameState:
        """
        LOBBY -> VOTING

        異常：
            InvalidStateTransition: 已經不在 LOBBY（例如重複按開始）
        """
        def build(state: GameState):
            return GameState(
                phase=Phase.VOTING,
                current_candidate_index=0,
                current_candidate_id=movie_order[0],
                round=1,
                voting_started_at=now,
            )

        committed, state = self._apply(code, Phase.LOBBY, build)
        if not committed:
            raise InvalidStateTransition(
                f"Game can only be started from lobby (current phase: {state.phase.value})"
            )

        logger.info(f"Room {code} started voting on movie {state.current_candidate_id}")
        return state

    def reveal(self, code: str, candidate_id: str, now: datetime) -> Tuple[bool, GameState]:
        """
        VOTING -> REVEAL（冪等）

        只有在仍是 VOTING 且目前電影仍是 candidate_id 時才轉換，
        否則返回 (False, 目前狀態)，不拋異常。
        """
        def build(state: GameState):
            if state.current_candidate_id != candidate_id:
                return None
            return state.model_copy(update={
                "phase": Phase.REVEAL,
                "reveal_started_at": now,
            })

        committed, state = self._apply(code, Phase.VOTING, build)
        if committed:
            logger.info(f"Room {code} revealing votes for movie {candidate_id}")
        else:
            logger.debug(f"Reveal for movie {candidate_id} in room {code} was a no-op")
        return committed, state

    def advance(self, code: str, movie_order: List[str], now: datetime) -> GameState:
        """
        REVEAL -> VOTING（還有下一部）或 REVEAL -> RESULTS（最後一部）

        異常：
            InvalidStateTransition: 目前不在 REVEAL
        """
        def build(state: GameState):
            next_index = (state.current_candidate_index or 0) + 1
            if next_index < len(movie_order):
                return state.model_copy(update={
                    "phase": Phase.VOTING,
                    "current_candidate_index": next_index,
                    "current_candidate_id": movie_order[next_index],
                    "round": state.round + 1,
                    "voting_started_at": now,
                    "reveal_started_at": None,
                })
            return state.model_copy(update={
                "phase": Phase.RESULTS,
                "current_candidate_index": None,
                "current_candidate_id": None,
                "voting_started_at": None,
            })

        committed, state = self._apply(code, Phase.REVEAL, build)
        if not committed:
            raise InvalidStateTransition(
                f"Can only advance from reveal (current phase: {state.phase.value})"
            )

        logger.info(f"Room {code} advanced to {state.phase.value} (round {state.round})")
        return state

    def select(self, code: str) -> GameState:
        """
        RESULTS -> SELECTED

        異常：
            InvalidStateTransition: 目前不在 RESULTS（包含已經選好片）
        """
        def build(state: GameState):
            return state.model_copy(update={"phase": Phase.SELECTED})

        committed, state = self._apply(code, Phase.RESULTS, build)
        if not committed:
            raise InvalidStateTransition(
                f"A movie can only be selected from results (current phase: {state.phase.value})"
            )
        return state
