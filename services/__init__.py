"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- NamingService：房間代碼、顯示名稱
- VoteService：投票計數與全員投票判斷
- SelectionService：排名、前三名、輪盤、多數決判斷
- CandidateService：候選電影的顯示內容
"""
