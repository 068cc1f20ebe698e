"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Board：棋盤與連線判定
- 狀態機：集中管理所有狀態轉換
- MoveValidator：落子驗證
- SessionEngine：管理一局遊戲的生命週期
- Locks：並發控制工具
- SessionStore：狀態儲存介面與實作
"""
