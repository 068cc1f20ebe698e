"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- TurnService：玩家記號與換手
- ReplayService：由落子紀錄重建棋盤
"""
