"""
API 層：FastAPI routers（只負責 HTTP 轉換，業務邏輯都在 core/）
"""
