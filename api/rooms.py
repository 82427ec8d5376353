"""
Room API Endpoints

職責：
1. 建立 / 查詢 / 關閉房間
2. Host 加入候選電影、查詢候選電影
3. Host 開始遊戲
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import (
    RoomCreate,
    RoomCreatedResponse,
    MoviesAdd,
    MoviesAddedResponse,
    HostAction,
    StatusResponse,
)
from core.records import GameState
from core.room_manager import RoomManager
from core.exceptions import MovieMatchException
from api.dependencies import get_room_manager

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomCreatedResponse, status_code=201)
def create_room(data: RoomCreate, manager: RoomManager = Depends(get_room_manager)):
    """
    建立房間（建立者自動成為 Host）

    返回：
        - room_code: 6 位房間代碼
        - user_id: Host 的 user id（之後的 Host 動作都要帶）
        - room: 房間內容
    """
    try:
        room, host = manager.create_room(data.creator_name, data.filters, data.settings)
        return RoomCreatedResponse(room_code=room.code, user_id=host.id, room=room.snapshot())

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}")
def get_room(code: str, manager: RoomManager = Depends(get_room_manager)):
    try:
        return manager.get_room(code).snapshot()

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/movies", response_model=MoviesAddedResponse)
def add_movies(code: str, data: MoviesAdd, manager: RoomManager = Depends(get_room_manager)):
    """
    加入候選電影（Host endpoint）

    電影內容原樣保存，只要求每部電影有 id
    """
    try:
        added = manager.add_candidates(code, data.user_id, data.movies)
        return MoviesAddedResponse(added_movies=added)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to add movies to room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/movies")
def list_movies(code: str, manager: RoomManager = Depends(get_room_manager)):
    """依投票順序列出候選電影"""
    try:
        return {"movies": manager.list_candidates(code)}

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to list movies for room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/start", response_model=GameState)
def start_game(code: str, data: HostAction, manager: RoomManager = Depends(get_room_manager)):
    """
    開始遊戲（Host endpoint）

    前置條件：
    - 至少有一部電影
    - 房間在 LOBBY
    """
    try:
        return manager.start_game(code, data.user_id)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to start game in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/close", response_model=StatusResponse)
def close_room(code: str, data: HostAction, manager: RoomManager = Depends(get_room_manager)):
    """關閉房間（Host endpoint）"""
    try:
        manager.close_room(code, data.user_id)
        return StatusResponse(status="closed")

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to close room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
