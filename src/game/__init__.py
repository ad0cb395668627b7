# 游戏流程控制模块
from .player import PlayerRecord
from .game_state import (
    SessionState, GamePhase, GameSignal, GameEvent,
    ActionResult, RejectReason, RankingEntry,
)
from .controller import PhaseController, PhaseViolation, AIStrategy, normalize_player_names
