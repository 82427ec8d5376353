"""
Round Manager：投票回合的進行

職責：
1. 記錄投票（重投會修正計數）並判斷是否全員投完
2. 全員投完或逾時 → VOTING -> REVEAL
3. Host 推進 → 下一部電影或進入結果
4. 提供短輪詢用的回合狀態

並發設計：
- 投票紀錄以 votes/{movie_id} 單一 path 的 transact 更新（整份覆寫）
- 是否全員投完：用「剛寫入的紀錄 + 重新讀取的成員名單」判斷，
  中途加入的人也會被算進去
- REVEAL 轉換是冪等的，兩張票同時觸發也只會轉換一次
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from database import Settings, get_settings
from models import Phase
from core.exceptions import CandidateNotFound, InvalidState
from core.records import GameState, Room, VoteRecord, utcnow
from core.room_manager import load_room, require_active, require_host, require_member
from core.state_machine import GameStateMachine
from core.store import RoomStore, room_path
from services.vote_service import apply_vote, all_voted

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    candidate_id: str
    record: VoteRecord
    all_voted: bool
    game_state: GameState


class RoundManager:
    """投票回合管理器"""

    def __init__(self, store: RoomStore, settings: Settings = None):
        self.store = store
        self.settings = settings or get_settings()
        self.state_machine = GameStateMachine(store)

    def vote(self, code: str, user_id: str, candidate_id, value: bool) -> VoteOutcome:
        """
        對目前的電影投票

        流程：
        1. 驗證房間、使用者、電影
        2. 驗證階段（必須是 VOTING，且只能投目前這部）
        3. transact 更新投票紀錄（先扣掉舊的選擇再加新的）
        4. 重新讀取成員名單，判斷是否全員投完
        5. 全員投完 → 嘗試 VOTING -> REVEAL（冪等）

        異常：
            RoomNotFound / UserNotFound / CandidateNotFound
            InvalidState: 房間關閉、不在 VOTING、不是目前這部電影
        """
        candidate_id = str(candidate_id)

        # 1. 驗證
        room = load_room(self.store, code)
        require_active(room)
        require_member(room, user_id)
        if candidate_id not in room.movies:
            raise CandidateNotFound(candidate_id)

        # 2. 階段
        state = room.game_state
        if state.phase != Phase.VOTING:
            raise InvalidState(f"Voting is not open (phase: {state.phase.value})")
        if state.current_candidate_id != candidate_id:
            raise InvalidState(
                f"Movie {candidate_id} is not the one being voted on "
                f"(current: {state.current_candidate_id})"
            )

        # 3. 更新投票紀錄
        def update(current):
            record = VoteRecord.model_validate(current) if current else None
            return apply_vote(record, user_id, value).model_dump(mode="json")

        _, data = self.store.transact(room_path(room.code, "votes", candidate_id), update)
        record = VoteRecord.model_validate(data)

        logger.info(
            f"User {user_id} voted {'yes' if value else 'no'} on movie {candidate_id} "
            f"in room {room.code} ({record.yes_count} yes / {record.no_count} no)"
        )

        # 4. 重新讀取成員名單
        members = self.store.read(room_path(room.code, "users")) or {}
        everyone_voted = all_voted(record, members.keys())

        # 5. 嘗試轉換
        if everyone_voted:
            _, state = self.state_machine.reveal(room.code, candidate_id, utcnow())

        return VoteOutcome(
            candidate_id=candidate_id,
            record=record,
            all_voted=everyone_voted,
            game_state=state,
        )

    def signal_timeout(self, code: str) -> GameState:
        """
        明確的逾時訊號：VOTING -> REVEAL

        已經被其他請求轉換過（例如最後一票剛好同時進來）時是 no-op

        異常：
            InvalidState: 不在 VOTING
        """
        room = load_room(self.store, code)
        require_active(room)

        state = room.game_state
        if state.phase != Phase.VOTING:
            raise InvalidState(f"Timeout is only valid while voting (phase: {state.phase.value})")

        revealed, state = self.state_machine.reveal(room.code, state.current_candidate_id, utcnow())
        if revealed:
            logger.info(f"Voting timed out for movie {state.current_candidate_id} in room {room.code}")
        return state

    def check_timeout(self, code: str, now: Optional[datetime] = None) -> bool:
        """
        輪詢用的逾時檢查（由外部排程或前端定期呼叫）

        返回：
            True 如果這次呼叫讓回合進入 REVEAL
        """
        now = now or utcnow()
        room = load_room(self.store, code)
        if not room.active:
            return False

        state = room.game_state
        if state.phase != Phase.VOTING or state.voting_started_at is None:
            return False

        deadline = state.voting_started_at + timedelta(
            seconds=room.settings.voting_timeout_seconds
        )
        if now < deadline:
            return False

        revealed, _ = self.state_machine.reveal(room.code, state.current_candidate_id, now)
        if revealed:
            logger.info(
                f"Voting deadline passed for movie {state.current_candidate_id} in room {room.code}"
            )
        return revealed

    def advance(self, code: str, user_id: str) -> GameState:
        """
        Host 推進到下一部電影（或進入結果）

        異常：
            HostOnlyAction: 不是 Host
            InvalidStateTransition: 不在 REVEAL
        """
        room = load_room(self.store, code)
        require_active(room)
        require_host(room, user_id, "advance to the next movie")

        return self.state_machine.advance(room.code, room.ordered_candidate_ids(), utcnow())

    def get_state(self, code: str) -> Room:
        """短輪詢用：返回整個房間（game_state + 目前電影的票數）"""
        return load_room(self.store, code)

    @staticmethod
    def current_record(room: Room) -> Optional[VoteRecord]:
        candidate_id = room.game_state.current_candidate_id
        if candidate_id is None:
            return None
        return room.votes.get(candidate_id) or VoteRecord()
