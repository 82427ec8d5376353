"""
投票計算服務

職責：
1. 把一張票（含重投）套用到 VoteRecord 上
2. 判斷房間成員是否都已經投過這部電影

注意：
- 只做純計算，不讀寫 store
- 寫入與階段轉換由 RoundManager 負責
"""
from typing import Iterable, Optional

from core.records import VoteRecord


def apply_vote(record: Optional[VoteRecord], user_id: str, value: bool) -> VoteRecord:
    """
    Return a new record with the user's choice applied.

    A previous choice by the same user is undone first, so voting the same
    value twice leaves the counts unchanged and a changed vote moves one
    count from one side to the other.
    """
    record = record.model_copy(deep=True) if record is not None else VoteRecord()

    previous = record.choices.get(user_id)
    if previous is not None:
        if previous:
            record.yes_count -= 1
        else:
            record.no_count -= 1

    if value:
        record.yes_count += 1
    else:
        record.no_count += 1
    record.choices[user_id] = value

    return record


def all_voted(record: Optional[VoteRecord], member_ids: Iterable[str]) -> bool:
    """True when every current member has a recorded choice."""
    choices = record.choices if record is not None else {}
    member_ids = list(member_ids)
    return bool(member_ids) and all(member_id in choices for member_id in member_ids)
