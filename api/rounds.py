"""
Round API Endpoints - 短輪詢版

重點：
1. vote 可以重投，計數不會重複累加
2. 最後一票、逾時訊號、逾時檢查都可能觸發 REVEAL，轉換本身冪等
3. 前端靠 GET /state 短輪詢取得最新階段與票數
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import (
    VoteSubmit,
    VoteResponse,
    VoteCounts,
    HostAction,
    RoomStateResponse,
    TimeoutCheckResponse,
)
from core.records import GameState
from core.round_manager import RoundManager
from core.exceptions import MovieMatchException
from api.dependencies import get_round_manager

router = APIRouter(prefix="/api/rooms", tags=["rounds"])
logger = logging.getLogger(__name__)


@router.post("/{code}/vote", response_model=VoteResponse)
def submit_vote(code: str, data: VoteSubmit, manager: RoundManager = Depends(get_round_manager)):
    """
    對目前的電影投票

    返回：
        - current_votes: 目前這部電影的贊成 / 反對 / 總票數
        - all_voted: 是否全員都投完了
        - game_state: 投票後的階段（全員投完會變成 reveal）
    """
    try:
        outcome = manager.vote(code, data.user_id, data.movie_id, data.vote)
        record = outcome.record
        return VoteResponse(
            movie_id=outcome.candidate_id,
            current_votes=VoteCounts(yes=record.yes_count, no=record.no_count, total=record.total),
            all_voted=outcome.all_voted,
            game_state=outcome.game_state,
        )

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to record vote in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/timeout", response_model=GameState)
def signal_timeout(code: str, manager: RoundManager = Depends(get_round_manager)):
    """前端倒數結束時呼叫：VOTING -> REVEAL"""
    try:
        return manager.signal_timeout(code)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to signal timeout in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/tick", response_model=TimeoutCheckResponse)
def check_timeout(code: str, manager: RoundManager = Depends(get_round_manager)):
    """
    逾時檢查（排程 / 輪詢用）

    超過 voting_timeout_seconds 才會轉換，否則什麼都不做
    """
    try:
        revealed = manager.check_timeout(code)
        room = manager.get_state(code)
        return TimeoutCheckResponse(revealed=revealed, game_state=room.game_state)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to check timeout in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/advance", response_model=GameState)
def advance(code: str, data: HostAction, manager: RoundManager = Depends(get_round_manager)):
    """
    推進到下一部電影（Host endpoint）

    效果：
    - 還有電影：REVEAL -> VOTING
    - 最後一部：REVEAL -> RESULTS
    """
    try:
        return manager.advance(code, data.user_id)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to advance room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/state", response_model=RoomStateResponse)
def get_state(code: str, manager: RoundManager = Depends(get_round_manager)):
    """
    短輪詢用的房間狀態

    anonymous_votes=True 時不返回已投票的 user id
    """
    try:
        room = manager.get_state(code)
        record = manager.current_record(room)

        current_votes = None
        voted_user_ids = []
        if record is not None:
            current_votes = VoteCounts(yes=record.yes_count, no=record.no_count, total=record.total)
            if not room.settings.anonymous_votes:
                voted_user_ids = list(record.choices)

        return RoomStateResponse(
            room_code=room.code,
            active=room.active,
            phase=room.game_state.phase,
            game_state=room.game_state,
            member_count=len(room.users),
            current_votes=current_votes,
            voted_user_ids=voted_user_ids,
            selected_movie=room.selected_movie,
        )

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get state for room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
