"""
Room Store：房間狀態的 keyed store 介面

引擎所有狀態都透過 path 讀寫，例如：
    rooms/{code}
    rooms/{code}/users/{user_id}
    rooms/{code}/votes/{movie_id}
    rooms/{code}/game_state

保證範圍：
- 只保證「單一 path」的原子性，不提供跨 path 的 transaction
- transact() 是單一 path 的 read-modify-write，用於投票計數與階段轉換
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple
import copy
import threading

ROOMS_ROOT = "rooms"


def room_path(code: str, *parts) -> str:
    """組出房間範圍內的 path，例如 room_path("ABC123", "votes", 42)"""
    return "/".join([ROOMS_ROOT, code, *(str(p) for p in parts)])


def split_path(path: str) -> Tuple[str, List[str]]:
    """
    拆解 path 成 (room code, 房間內的 key 列表)

    異常：
        ValueError: path 不在 rooms/{code} 之下
    """
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2 or parts[0] != ROOMS_ROOT:
        raise ValueError(f"Path must start with '{ROOMS_ROOT}/{{code}}', got {path!r}")
    return parts[1], parts[2:]


def get_in(doc: Any, keys: List[str]) -> Any:
    node = doc
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def set_in(doc: dict, keys: List[str], value: Any) -> dict:
    """在 document 內寫入節點；value 為 None 代表刪除該節點"""
    node = doc
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if value is None:
                return doc
            child = {}
            node[key] = child
        node = child

    if value is None:
        node.pop(keys[-1], None)
    else:
        node[keys[-1]] = value
    return doc


def merge_into(current: Any, partial: dict) -> dict:
    """淺層合併：partial 的每個 key 直接覆蓋，值為 None 的 key 會被移除"""
    merged = dict(current) if isinstance(current, dict) else {}
    for key, value in partial.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


class RoomStore(ABC):
    """Keyed store 介面（具體實作可替換：記憶體、SQL...）"""

    @abstractmethod
    def read(self, path: str) -> Optional[Any]:
        """讀取節點，不存在時返回 None"""

    @abstractmethod
    def write(self, path: str, value: Any) -> None:
        """整個節點覆寫；value=None 代表刪除"""

    @abstractmethod
    def merge(self, path: str, partial: dict) -> None:
        """對 path 上的 mapping 做淺層合併"""

    @abstractmethod
    def create(self, path: str, value: dict) -> bool:
        """
        Check-and-set：只有 path 不存在時才寫入

        返回：
            True 寫入成功；False 代表已被其他請求佔用
        """

    @abstractmethod
    def transact(self, path: str, update_fn: Callable[[Any], Any]) -> Tuple[bool, Any]:
        """
        單一 path 的原子 read-modify-write

        update_fn 收到目前的值（不存在時為 None），返回新的值；
        返回 None 代表放棄，不寫入。

        返回：
            (committed, value) - 是否寫入，以及寫入後（或放棄時當下）的值
        """


class InMemoryRoomStore(RoomStore):
    """
    Process 內的 store（測試與單機開發用）

    所有讀寫都 deep copy，呼叫者拿到的值不會和 store 內部共用。
    """

    def __init__(self):
        self._rooms = {}
        self._lock = threading.RLock()

    def read(self, path):
        code, keys = split_path(path)
        with self._lock:
            doc = self._rooms.get(code)
            return copy.deepcopy(get_in(doc, keys))

    def write(self, path, value):
        code, keys = split_path(path)
        value = copy.deepcopy(value)
        with self._lock:
            if not keys:
                if value is None:
                    self._rooms.pop(code, None)
                else:
                    self._rooms[code] = value
                return
            self._rooms[code] = set_in(self._rooms.get(code, {}), keys, value)

    def merge(self, path, partial):
        with self._lock:
            current = self.read(path)
            self.write(path, merge_into(current, partial))

    def create(self, path, value):
        with self._lock:
            if self.read(path) is not None:
                return False
            self.write(path, value)
            return True

    def transact(self, path, update_fn):
        with self._lock:
            current = self.read(path)
            updated = update_fn(copy.deepcopy(current))
            if updated is None:
                return False, current
            self.write(path, updated)
            return True, copy.deepcopy(updated)
