"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理所有 game_state 的轉換
- Manager：管理 Room、投票回合、結果的生命週期
- Store：房間狀態的 keyed store（記憶體 / SQL）
- Locks：並發控制工具
"""
