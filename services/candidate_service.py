"""
候選電影清單服務

職責：
1. 依 movie_order 組出前端要顯示的候選電影清單
2. 可選的 enrich 函式補上更完整的資料（演員、串流平台...）

異常：
- 單一電影 enrich 失敗只記 warning，該部退回 store 裡的資料，整個請求照常完成
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from core.records import Candidate, Room

logger = logging.getLogger(__name__)

Enricher = Callable[[Candidate], Dict[str, Any]]


def build_candidate_views(room: Room, enrich: Optional[Enricher] = None) -> List[Dict[str, Any]]:
    views: List[Dict[str, Any]] = []

    for position, candidate_id in enumerate(room.ordered_candidate_ids()):
        candidate = room.movies[candidate_id]
        view: Dict[str, Any] = {
            **candidate.payload,
            "id": candidate.id,
            "position": position,
            "added_at": candidate.added_at.isoformat(),
        }

        if enrich is not None:
            try:
                view.update(enrich(candidate) or {})
            except Exception as e:
                logger.warning(
                    f"Failed to enrich movie {candidate.id} in room {room.code}: {e}"
                )

        views.append(view)

    return views
