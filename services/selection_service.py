"""
選片服務：排名、前三名、輪盤與多數決判斷

純計算邏輯，不寫 store、不轉換階段（由 ResultManager 負責）
"""
import random
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.exceptions import InvalidState
from core.records import Room, VoteRecord

TOP_LIST_SIZE = 3


class ResultEntry(BaseModel):
    id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    yes_votes: int = 0
    no_votes: int = 0
    total_votes: int = 0
    score: int = 0


class ResultsSummary(BaseModel):
    room_code: str
    total_candidates: int
    total_votes: int
    results: List[ResultEntry]
    top_three: List[ResultEntry]
    majority_candidate_id: Optional[str] = None


def compute_results(room: Room, majority_threshold: float = 0.5) -> ResultsSummary:
    """
    計算房間的排名

    規則：
    - score = 贊成票數
    - 依 score 由高到低排序
    - 同分時維持原本的加入順序（sorted 是 stable sort，先加入的排前面）

    參數：
        room: 房間
        majority_threshold: 多數決門檻（見 majority_candidate）

    返回：
        ResultsSummary（含完整排名與前三名）

    範例：
        A:2, B:2, C:1（依序加入）→ [A, B, C]
    """
    entries = []
    for candidate_id in room.ordered_candidate_ids():
        record = room.votes.get(candidate_id) or VoteRecord()
        entries.append(ResultEntry(
            id=candidate_id,
            payload=room.movies[candidate_id].payload,
            yes_votes=record.yes_count,
            no_votes=record.no_count,
            total_votes=record.total,
            score=record.yes_count,
        ))

    results = sorted(entries, key=lambda entry: entry.score, reverse=True)
    majority = majority_candidate(results, majority_threshold)

    return ResultsSummary(
        room_code=room.code,
        total_candidates=len(results),
        total_votes=sum(entry.total_votes for entry in results),
        results=results,
        top_three=results[:TOP_LIST_SIZE],
        majority_candidate_id=majority.id if majority else None,
    )


def majority_candidate(results: List[ResultEntry], threshold: float) -> Optional[ResultEntry]:
    """
    判斷是否有「明確多數」的第一名

    條件（全部成立才算）：
    1. 第一名有人投票
    2. 贊成比例嚴格大於 threshold（剛好 50% 不算）
    3. 第一名的 score 沒有和第二名同分

    返回：
        第一名；沒有明確多數時返回 None（呼叫者應改用輪盤）
    """
    if not results:
        return None

    top = results[0]
    if top.total_votes == 0:
        return None
    if top.yes_votes / top.total_votes <= threshold:
        return None
    if len(results) > 1 and results[1].score == top.score:
        return None
    return top


def choose_by_roulette(top_three: List[ResultEntry], rng: random.Random = None) -> ResultEntry:
    """
    從前三名中等機率抽一部

    機率以實際長度計算（1、2 或 3 部），不是固定除以 3

    異常：
        InvalidState: 沒有任何候選電影
    """
    if not top_three:
        raise InvalidState("No movies available for roulette")
    rng = rng or random
    return rng.choice(top_three)
