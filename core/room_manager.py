"""
Room Manager：管理房間的完整生命週期

職責：
1. 建立房間（含 Host 使用者）
2. 加入房間
3. Host 加入候選電影
4. 開始遊戲（階段轉換 + 驗證）
5. 關閉房間
6. 查詢房間 / 候選電影

所有狀態都透過注入的 RoomStore 讀寫，不依賴全域 singleton。
"""
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
import logging
import random

from database import Settings, get_settings
from models import Phase
from core.exceptions import (
    RoomNotFound,
    UserNotFound,
    HostOnlyAction,
    RoomClosed,
    RoomNotAcceptingPlayers,
    RoomCodeExhausted,
    InvalidState,
    InvalidStateTransition,
    ValidationError,
)
from core.records import Room, RoomSettings, User, Candidate, VoteRecord, GameState, utcnow
from core.state_machine import GameStateMachine
from core.store import RoomStore, room_path
from services.candidate_service import Enricher, build_candidate_views
from services.naming_service import (
    allocate_room_code,
    validate_display_name,
    default_guest_name,
)

logger = logging.getLogger(__name__)

CANDIDATE_EDIT_PHASES = (Phase.LOBBY, Phase.VOTING, Phase.REVEAL)


# ============ 共用檢查（Round / Result Manager 也會用到） ============

def load_room(store: RoomStore, code: str) -> Room:
    """
    讀取整個房間

    異常：
        RoomNotFound: 房間不存在
    """
    code = (code or "").strip().upper()
    data = store.read(room_path(code)) if code else None
    if data is None:
        raise RoomNotFound(code)
    return Room.model_validate(data)


def require_active(room: Room) -> None:
    if not room.active:
        raise RoomClosed(room.code)


def require_member(room: Room, user_id: Optional[str]) -> User:
    user = room.users.get(user_id) if user_id else None
    if user is None:
        raise UserNotFound(user_id)
    return user


def require_host(room: Room, user_id: Optional[str], action: str) -> User:
    user = require_member(room, user_id)
    if not user.is_host:
        raise HostOnlyAction(action)
    return user


class RoomManager:
    """房間生命週期管理器"""

    def __init__(
        self,
        store: RoomStore,
        settings: Settings = None,
        enrich: Optional[Enricher] = None,
        rng: random.Random = None
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.enrich = enrich
        self.rng = rng
        self.state_machine = GameStateMachine(store)

    def create_room(
        self,
        creator_name: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        room_settings: Optional[RoomSettings] = None
    ) -> Tuple[Room, User]:
        """
        建立新房間（含 Host 使用者）

        流程：
        1. 驗證 Host 名稱
        2. 抽一個目前沒人用的代碼
        3. store.create() 做 check-and-set；被搶走就重抽

        返回：
            (Room, Host User) tuple

        異常：
            ValidationError: 名稱不合法
            RoomCodeExhausted: 重試上限內都拿不到代碼
        """
        # 1. 驗證名稱
        creator = validate_display_name(creator_name, "Anonymous", self.settings.max_name_length)
        host = User(id=uuid4().hex, name=creator, is_host=True)

        # 2-3. 抽代碼並 check-and-set（撞號與被搶走共用同一個重試上限）
        max_attempts = self.settings.room_code_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                code = allocate_room_code(self.store, 1, self.rng)
            except RoomCodeExhausted:
                continue
            room = Room(
                code=code,
                creator=creator,
                settings=room_settings or RoomSettings(),
                filters=filters or {},
                users={host.id: host},
            )
            if self.store.create(room_path(code), room.model_dump(mode="json")):
                logger.info(f"Created room {code} for host {host.id} ({creator})")
                return room, host

            logger.warning(
                f"Room code {code} was taken during creation, retrying ({attempt}/{max_attempts})"
            )

        raise RoomCodeExhausted(max_attempts)

    def get_room(self, code: str) -> Room:
        return load_room(self.store, code)

    def join_room(self, code: str, user_name: Optional[str] = None) -> Tuple[Room, User]:
        """
        加入房間

        前置條件：
        - 房間存在且 active
        - 還沒選出電影
        - allow_late_join=False 時只能在 LOBBY 加入

        注意：
            只寫 users/{user_id}，不會改動 game_state
        """
        # 1. 找到房間並檢查狀態
        room = load_room(self.store, code)
        require_active(room)

        phase = room.game_state.phase
        if phase == Phase.SELECTED:
            raise RoomNotAcceptingPlayers(f"Room {room.code} has already picked a movie")
        if not room.settings.allow_late_join and phase != Phase.LOBBY:
            raise RoomNotAcceptingPlayers(
                f"Room {room.code} is not accepting players (phase: {phase.value})"
            )

        # 2. 建立使用者
        name = validate_display_name(
            user_name, default_guest_name(len(room.users)), self.settings.max_name_length
        )
        user = User(id=uuid4().hex, name=name)
        self.store.write(room_path(room.code, "users", user.id), user.model_dump(mode="json"))

        logger.info(f"User {user.id} ({user.name}) joined room {room.code}")

        room.users[user.id] = user
        return room, user

    def add_candidates(self, code: str, user_id: str, movies: List[Dict[str, Any]]) -> int:
        """
        Host 加入候選電影

        規則：
        - 新的 id 依序接在 movie_order 後面，並建立空的投票紀錄
        - 已存在的 id 只更新內容，不動順序和票數
        - 總數不能超過 settings.candidate_count

        返回：
            新加入的電影數量

        異常：
            ValidationError: 清單為空、缺少 id、超過數量上限
            HostOnlyAction: 不是 Host
            InvalidState: 已經進入結果階段或房間關閉
        """
        room = load_room(self.store, code)
        require_active(room)
        require_host(room, user_id, "add movies to the room")

        if room.game_state.phase not in CANDIDATE_EDIT_PHASES:
            raise InvalidState(
                f"Movies cannot be added in phase {room.game_state.phase.value}"
            )

        if not isinstance(movies, list) or not movies:
            raise ValidationError("Please provide a list of movies")

        # 1. 驗證並去重（同一批內同 id 以最後一筆為準，位置以第一次出現為準）
        batch: Dict[str, Candidate] = {}
        for raw in movies:
            if not isinstance(raw, dict) or raw.get("id") in (None, ""):
                raise ValidationError("Every movie needs an id")
            candidate = Candidate.from_client(raw)
            existing = room.movies.get(candidate.id)
            if existing is not None:
                candidate.added_at = existing.added_at
            batch[candidate.id] = candidate

        new_ids = [cid for cid in batch if cid not in room.movies]
        limit = room.settings.candidate_count
        if len(room.movies) + len(new_ids) > limit:
            raise ValidationError(f"A room can hold at most {limit} movies")

        # 2. 寫入電影內容
        self.store.merge(
            room_path(room.code, "movies"),
            {cid: c.model_dump(mode="json") for cid, c in batch.items()}
        )

        # 3. 新電影：空的投票紀錄 + 接到順序後面
        if new_ids:
            self.store.merge(
                room_path(room.code, "votes"),
                {cid: VoteRecord().model_dump(mode="json") for cid in new_ids}
            )
            self.store.transact(
                room_path(room.code, "movie_order"),
                lambda current: (current or []) + [
                    cid for cid in new_ids if cid not in (current or [])
                ]
            )

        logger.info(
            f"Host {user_id} added {len(new_ids)} new movies to room {room.code} "
            f"({len(batch) - len(new_ids)} refreshed)"
        )
        return len(new_ids)

    def list_candidates(self, code: str) -> List[Dict[str, Any]]:
        room = load_room(self.store, code)
        return build_candidate_views(room, self.enrich)

    def start_game(self, code: str, user_id: str) -> GameState:
        """
        開始遊戲（LOBBY -> VOTING）

        前置條件：
        1. 房間存在且 active
        2. 呼叫者是 Host
        3. 至少有一部候選電影
        4. 目前在 LOBBY

        異常：
            RoomNotFound / UserNotFound / HostOnlyAction
            InvalidState: 沒有電影
            InvalidStateTransition: 不在 LOBBY
        """
        room = load_room(self.store, code)
        require_active(room)
        require_host(room, user_id, "start the game")

        order = room.ordered_candidate_ids()
        if not order:
            raise InvalidState("Add at least one movie before starting the game")

        if room.game_state.phase != Phase.LOBBY:
            raise InvalidStateTransition(
                f"Game already started (phase: {room.game_state.phase.value})"
            )

        logger.info(f"Starting game for room {room.code} with {len(order)} movies")
        return self.state_machine.start(room.code, order, utcnow())

    def close_room(self, code: str, user_id: str) -> Room:
        """
        關閉房間（active=false）

        房間不會被刪除；重複關閉不會改動原本的 closed_at
        """
        room = load_room(self.store, code)
        require_host(room, user_id, "close the room")

        if not room.active:
            return room

        closed_at = utcnow()
        self.store.merge(
            room_path(room.code),
            {"active": False, "closed_at": closed_at.isoformat()}
        )
        logger.info(f"Room {room.code} closed by host {user_id}")

        room.active = False
        room.closed_at = closed_at
        return room
