"""
Result API Endpoints

職責：
1. 查詢排名與前三名
2. 輪盤選片
3. 直接選定電影 / 自動判斷（多數決或輪盤）
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import MovieSelect, DecideRequest, SelectionResponse
from core.result_manager import ResultManager
from core.exceptions import MovieMatchException
from services.selection_service import ResultsSummary
from api.dependencies import get_result_manager

router = APIRouter(prefix="/api/rooms", tags=["results"])
logger = logging.getLogger(__name__)


@router.get("/{code}/results", response_model=ResultsSummary)
def get_results(code: str, manager: ResultManager = Depends(get_result_manager)):
    """
    取得排名

    返回：
        - results: 依贊成票排序的完整清單（同分依加入順序）
        - top_three: 前三名（輪盤用）
        - majority_candidate_id: 有明確多數時的第一名，否則 null
    """
    try:
        return manager.get_results(code)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get results for room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/roulette", response_model=SelectionResponse)
def roulette(code: str, manager: ResultManager = Depends(get_result_manager)):
    """從前三名隨機選一部（RESULTS -> SELECTED）"""
    try:
        return SelectionResponse(selected_movie=manager.pick_by_roulette(code))

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to run roulette in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/select", response_model=SelectionResponse)
def select_movie(code: str, data: MovieSelect, manager: ResultManager = Depends(get_result_manager)):
    """直接選定一部電影（有明確多數時由前端呼叫）"""
    try:
        selected = manager.pick_by_majority(code, data.movie_id, data.user_id)
        return SelectionResponse(selected_movie=selected)

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to select movie in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/decide", response_model=SelectionResponse)
def decide(code: str, data: DecideRequest, manager: ResultManager = Depends(get_result_manager)):
    """有明確多數就選第一名，否則轉輪盤"""
    try:
        return SelectionResponse(selected_movie=manager.decide(code, data.user_id))

    except MovieMatchException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to decide in room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
