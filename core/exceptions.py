"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理。
每個類別帶有 status_code，API 層直接用它轉成 HTTPException。
"""


class MovieMatchException(Exception):
    """所有房間 / 投票異常的基類"""
    status_code = 500


# ============ 輸入驗證 ============

class ValidationError(MovieMatchException):
    """輸入格式錯誤或超過長度限制"""
    status_code = 400


# ============ 權限 ============

class Forbidden(MovieMatchException):
    status_code = 403


class HostOnlyAction(Forbidden):
    """非 Host 嘗試執行 Host 限定的動作"""
    def __init__(self, action):
        self.action = action
        super().__init__(f"Only the host can {action}")


# ============ 不存在 ============

class NotFound(MovieMatchException):
    status_code = 404


class RoomNotFound(NotFound):
    """房間不存在"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room {code} not found")


class UserNotFound(NotFound):
    """使用者不在房間內"""
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found in room")


class CandidateNotFound(NotFound):
    """電影不在房間的候選清單內"""
    def __init__(self, candidate_id):
        self.candidate_id = candidate_id
        super().__init__(f"Movie {candidate_id} not found in room")


# ============ 狀態錯誤 ============

class InvalidState(MovieMatchException):
    """目前階段不允許這個動作"""
    status_code = 409


class InvalidStateTransition(InvalidState):
    """非法的階段轉換"""
    pass


class RoomClosed(InvalidState):
    """房間已關閉（active=false）"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room {code} is no longer active")


class RoomNotAcceptingPlayers(InvalidState):
    """房間不接受新使用者加入"""
    pass


# ============ 儲存層 ============

class AdapterError(MovieMatchException):
    """底層 store 失敗（不重試，直接往上拋）"""
    status_code = 500


class RoomCodeExhausted(MovieMatchException):
    """超過重試上限仍拿不到可用的房間代碼"""
    status_code = 503

    def __init__(self, attempts):
        self.attempts = attempts
        super().__init__(f"Could not allocate a free room code after {attempts} attempts")
