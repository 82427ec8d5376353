"""
命名服務：生成 Room Code、驗證顯示名稱

房間代碼只負責「抽號碼 + 查 store 是否已存在」，
真正的 check-and-set 由 RoomManager.create_room 透過 store.create() 完成。
"""
import logging
import random
import string

from core.exceptions import RoomCodeExhausted, ValidationError
from core.store import RoomStore, room_path

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6


def generate_room_code(rng: random.Random = None) -> str:
    """
    生成隨機的 6 位房間代碼（A-Z 與 0-9）

    範例：AB12CD, 9XK3QZ

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 36^6 ≈ 21 億種可能，碰撞機率極低
    """
    rng = rng or random
    return ''.join(rng.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def allocate_room_code(store: RoomStore, max_attempts: int, rng: random.Random = None) -> str:
    """
    抽出一個目前沒有房間使用的代碼

    參數：
        store: Room store
        max_attempts: 最多抽幾次
        rng: 測試用的亂數來源

    返回：
        可用的房間代碼

    異常：
        RoomCodeExhausted: 超過 max_attempts 次都撞號
    """
    for attempt in range(1, max_attempts + 1):
        code = generate_room_code(rng)
        if store.read(room_path(code)) is None:
            return code
        logger.warning(f"Room code collision detected ({attempt}/{max_attempts}): {code}")

    raise RoomCodeExhausted(max_attempts)


def validate_display_name(name, default: str, max_length: int) -> str:
    """
    驗證並整理顯示名稱

    - None 或空白 → default
    - 非字串或超過 max_length → ValidationError
    """
    if name is None:
        return default
    if not isinstance(name, str):
        raise ValidationError("Name must be a string")

    name = name.strip()
    if len(name) > max_length:
        raise ValidationError(f"Name must be a string of {max_length} characters or less")
    return name or default


def default_guest_name(member_count: int) -> str:
    """
    沒填名字的使用者的預設名稱

    範例：
        房間已有 1 人（Host）→ Guest 1
        房間已有 3 人 → Guest 3
    """
    return f"Guest {member_count}"
