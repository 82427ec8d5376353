"""
Player API Endpoints

職責：
1. 使用者加入房間
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import RoomJoin, RoomJoinedResponse
from core.room_manager import RoomManager
from core.exceptions import MovieMatchException
from api.dependencies import get_room_manager

router = APIRouter(prefix="/api/rooms", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/{code}/join", response_model=RoomJoinedResponse)
def join_room(code: str, data: RoomJoin, manager: RoomManager = Depends(get_room_manager)):
    """
    加入房間（玩家 endpoint）

    前置條件：
    - 房間必須存在且 active
    - 還沒選出電影（allow_late_join=False 時只能在 LOBBY 加入）

    流程：
    1. 透過房間代碼找到房間
    2. 檢查房間是否接受新使用者
    3. 沒給名字時產生預設名稱（例如：Guest 2）
    4. 建立使用者並返回
    """
    try:
        room, user = manager.join_room(code, data.user_name)
        return RoomJoinedResponse(room_code=room.code, user=user, room=room.snapshot())

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
