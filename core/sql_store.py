"""
SQL 版本的 Room Store

每個房間一筆 StoredRoom row，整個房間狀態以 JSON document 存放。
path 內的節點讀寫都在 document 內完成：

- 寫入：鎖定 row（with_room_lock）→ 修改 document 副本 → 整份寫回
- transact：同上，但新值由 update_fn 決定，返回 None 則放棄
- 所有寫入都包在 @transactional 內，失敗自動 rollback

SQLAlchemyError 一律轉成 AdapterError 往上拋，引擎不重試。
"""
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import copy
import logging

from database import SessionLocal, transactional
from models import StoredRoom
from core.exceptions import AdapterError
from core.locks import with_room_lock
from core.store import RoomStore, split_path, get_in, set_in, merge_into

logger = logging.getLogger(__name__)


def _save(db: Session, row, code: str, data):
    if data is None:
        if row is not None:
            db.delete(row)
    elif row is None:
        db.add(StoredRoom(code=code, data=data))
    else:
        row.data = data


def _read_node(db: Session, code: str, keys):
    row = db.get(StoredRoom, code)
    if row is None:
        return None
    return copy.deepcopy(get_in(row.data, keys))


@transactional
def _transact_node(db: Session, code: str, keys, update_fn):
    row = with_room_lock(code, db).first()
    data = copy.deepcopy(row.data) if row is not None else None
    current = get_in(data, keys) if data is not None else None

    updated = update_fn(copy.deepcopy(current))
    if updated is None:
        return False, current

    if keys:
        _save(db, row, code, set_in(data or {}, keys, updated))
    else:
        _save(db, row, code, updated)
    return True, copy.deepcopy(updated)


@transactional
def _write_node(db: Session, code: str, keys, value):
    row = with_room_lock(code, db).first()
    if not keys:
        _save(db, row, code, value)
        return
    data = copy.deepcopy(row.data) if row is not None else {}
    _save(db, row, code, set_in(data, keys, value))


@transactional
def _create_room(db: Session, code: str, value):
    if db.get(StoredRoom, code) is not None:
        return False
    db.add(StoredRoom(code=code, data=value))
    # flush 讓 primary key 衝突在這裡就爆出來
    db.flush()
    return True


class SqlRoomStore(RoomStore):
    """以 SQLAlchemy session factory 建立的 store（每次操作開一個 session）"""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def _run(self, func, *args):
        db = self._session_factory()
        try:
            return func(db, *args)
        except SQLAlchemyError as e:
            raise AdapterError(f"Room store failure: {e}") from e
        finally:
            db.close()

    def read(self, path):
        code, keys = split_path(path)
        return self._run(_read_node, code, keys)

    def write(self, path, value):
        code, keys = split_path(path)
        self._run(_write_node, code, keys, copy.deepcopy(value))

    def merge(self, path, partial):
        code, keys = split_path(path)
        self._run(_transact_node, code, keys, lambda current: merge_into(current, partial))

    def create(self, path, value):
        code, keys = split_path(path)
        if keys:
            committed, _ = self._run(
                _transact_node, code, keys,
                lambda current: copy.deepcopy(value) if current is None else None
            )
            return committed

        try:
            return self._run(_create_room, code, copy.deepcopy(value))
        except AdapterError as e:
            if isinstance(e.__cause__, IntegrityError):
                logger.warning(f"Room {code} was created concurrently by another request")
                return False
            raise

    def transact(self, path, update_fn):
        code, keys = split_path(path)
        return self._run(_transact_node, code, keys, update_fn)
