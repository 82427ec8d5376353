"""
並發控制工具

提供 Database-level 的鎖定機制，防止同一個房間 document 被同時改寫

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
SQLite 沒有 row lock，FOR UPDATE 會被忽略；改由 database.create_db_engine
在 transaction 開頭送 BEGIN IMMEDIATE，整個資料庫的寫入鎖在讀取前就拿到
"""
from sqlalchemy.orm import Session, Query

from models import StoredRoom


def with_room_lock(code: str, db: Session) -> Query:
    """
    鎖定一個房間 document（行級鎖）

    使用場景：
    - 改寫房間內任何 path 時（投票、階段轉換、加入房間...）
    - 需要確保 read-modify-write 期間不被其他請求修改

    範例：
        row = with_room_lock(code, db).first()
        if row is None:
            ...
        row.data = new_data
        db.commit()

    參數：
        code: 房間代碼
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(StoredRoom).filter(
        StoredRoom.code == code
    ).with_for_update(nowait=False)
