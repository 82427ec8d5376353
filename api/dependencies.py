"""
FastAPI dependencies：把 store 注入到各個 Manager

測試時用 app.dependency_overrides[get_store] 換成 InMemoryRoomStore
"""
from fastapi import Depends

from core.store import RoomStore
from core.sql_store import SqlRoomStore
from core.room_manager import RoomManager
from core.round_manager import RoundManager
from core.result_manager import ResultManager


def get_store() -> RoomStore:
    return SqlRoomStore()


def get_room_manager(store: RoomStore = Depends(get_store)) -> RoomManager:
    return RoomManager(store)


def get_round_manager(store: RoomStore = Depends(get_store)) -> RoundManager:
    return RoundManager(store)


def get_result_manager(store: RoomStore = Depends(get_store)) -> ResultManager:
    return ResultManager(store)
