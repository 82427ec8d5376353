"""
Result Manager：結果與最終選片

職責：
1. 計算排名與前三名（任何階段都可以查）
2. 輪盤：從前三名等機率抽一部
3. 多數決：記錄呼叫者選定的電影（門檻判斷由呼叫者負責）
4. decide：有明確多數就直接選，否則轉輪盤

選片順序：先做 RESULTS -> SELECTED 的轉換（只有一個請求會成功），
再寫入 selected_movie，避免兩個請求各自寫入不同的結果。
"""
from typing import Optional
import logging
import random

from database import Settings, get_settings
from models import Phase, SelectionMethod
from core.exceptions import CandidateNotFound, InvalidStateTransition
from core.records import Room, SelectedCandidate
from core.room_manager import load_room, require_active, require_member
from core.state_machine import GameStateMachine
from core.store import RoomStore, room_path
from services.selection_service import (
    ResultEntry,
    ResultsSummary,
    compute_results,
    choose_by_roulette,
)

logger = logging.getLogger(__name__)


class ResultManager:
    """結果 / 選片管理器"""

    def __init__(self, store: RoomStore, settings: Settings = None, rng: random.Random = None):
        self.store = store
        self.settings = settings or get_settings()
        self.rng = rng
        self.state_machine = GameStateMachine(store)

    def _summarize(self, room: Room) -> ResultsSummary:
        return compute_results(room, self.settings.majority_threshold)

    def get_results(self, code: str) -> ResultsSummary:
        room = load_room(self.store, code)
        return self._summarize(room)

    def pick_by_roulette(self, code: str) -> SelectedCandidate:
        """
        輪盤選片

        異常：
            InvalidStateTransition: 不在 RESULTS（包含已經選過）
            InvalidState: 前三名是空的
        """
        room = load_room(self.store, code)
        require_active(room)
        self._require_results_phase(room)

        summary = self._summarize(room)
        entry = choose_by_roulette(summary.top_three, self.rng)

        logger.info(
            f"Roulette in room {room.code} picked movie {entry.id} "
            f"out of {len(summary.top_three)} candidates"
        )
        return self._record(room, entry, SelectionMethod.ROULETTE, None)

    def pick_by_majority(self, code: str, candidate_id, user_id: str) -> SelectedCandidate:
        """
        直接選定一部電影（投票決定）

        不判斷門檻，只驗證電影存在並記錄是誰選的

        異常：
            UserNotFound / CandidateNotFound
            InvalidStateTransition: 不在 RESULTS
        """
        candidate_id = str(candidate_id)

        room = load_room(self.store, code)
        require_active(room)
        require_member(room, user_id)
        if candidate_id not in room.movies:
            raise CandidateNotFound(candidate_id)
        self._require_results_phase(room)

        summary = self._summarize(room)
        entry = next(e for e in summary.results if e.id == candidate_id)

        logger.info(f"User {user_id} selected movie {candidate_id} in room {room.code}")
        return self._record(room, entry, SelectionMethod.VOTE, user_id)

    def decide(self, code: str, user_id: str) -> SelectedCandidate:
        """有明確多數就選第一名，否則用輪盤"""
        room = load_room(self.store, code)
        require_active(room)
        require_member(room, user_id)
        self._require_results_phase(room)

        summary = self._summarize(room)
        if summary.majority_candidate_id is not None:
            return self.pick_by_majority(room.code, summary.majority_candidate_id, user_id)

        logger.info(f"No clear majority in room {room.code}, falling back to roulette")
        return self.pick_by_roulette(room.code)

    @staticmethod
    def _require_results_phase(room: Room) -> None:
        if room.game_state.phase != Phase.RESULTS:
            raise InvalidStateTransition(
                f"A movie can only be selected from results "
                f"(current phase: {room.game_state.phase.value})"
            )

    def _record(
        self,
        room: Room,
        entry: ResultEntry,
        method: SelectionMethod,
        user_id: Optional[str]
    ) -> SelectedCandidate:
        # 1. 階段轉換（搶輸的請求會在這裡拿到 InvalidStateTransition）
        self.state_machine.select(room.code)

        # 2. 寫入結果
        selected = SelectedCandidate(
            id=entry.id,
            payload=entry.payload,
            yes_votes=entry.yes_votes,
            no_votes=entry.no_votes,
            selection_method=method,
            selected_by=user_id,
        )
        self.store.write(room_path(room.code, "selected_movie"), selected.model_dump(mode="json"))
        return selected
