"""阶段控制器 - 把外部触发（按钮等）翻译成 SessionState 调用并转发通知"""

import logging
from typing import Dict, FrozenSet, List, Optional, Protocol, Sequence

from src.engine.card import compose_text
from src.game.player import PlayerRecord
from src.game.game_state import (
    ActionResult,
    GamePhase,
    GameSignal,
    RankingEntry,
    SessionState,
    SignalListener,
)

logger = logging.getLogger(__name__)

# 人数范围
MIN_PLAYERS = 3
MAX_PLAYERS = 6

# 空白名字的默认值
DEFAULT_PLAYER_NAME = "玩家{n}"

# 每个操作允许的阶段；restart 可从任意阶段放弃本局
_TRANSITIONS: Dict[str, FrozenSet[GamePhase]] = {
    "start_game": frozenset({GamePhase.SETUP}),
    "submit_tweet": frozenset({GamePhase.TWEETING}),
    "begin_voting": frozenset({GamePhase.TWEETING}),
    "submit_vote": frozenset({GamePhase.VOTING}),
    "show_results": frozenset({GamePhase.VOTING}),
    "restart": frozenset(GamePhase),
}


class PhaseViolation(RuntimeError):
    """在错误的阶段调用了操作（调用方的 bug，不是玩家输入错误）"""


class AIStrategy(Protocol):
    """自动玩家接口（策略模式）"""

    def compose_tweet(self, player: PlayerRecord, state: SessionState) -> str:
        """用手牌拼出一条推文"""
        ...

    def decide_vote(self, voter_index: int, state: SessionState) -> int:
        """返回投票对象的序号"""
        ...


def normalize_player_names(names: Sequence[Optional[str]]) -> List[str]:
    """空白名字用默认名补齐，重复名字追加 (2)、(3) 后缀"""
    result: List[str] = []
    seen = set()
    for i, name in enumerate(names):
        name = (name or "").strip() or DEFAULT_PLAYER_NAME.format(n=i + 1)
        unique = name
        suffix = 2
        while unique in seen:
            unique = f"{name} ({suffix})"
            suffix += 1
        seen.add(unique)
        result.append(unique)
    return result


class PhaseController:
    """阶段控制器：唯一负责阶段把关，本身不保存游戏数据"""

    def __init__(
        self,
        session: SessionState,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
    ):
        self.session = session
        self.min_players = min_players
        self.max_players = max_players
        self._callbacks: List[SignalListener] = []
        session.on_signal(self._relay)

    def on_signal(self, callback: SignalListener) -> None:
        """注册展示层回调"""
        self._callbacks.append(callback)

    def _relay(self, signal: GameSignal) -> None:
        for cb in self._callbacks:
            cb(signal)

    @property
    def phase(self) -> GamePhase:
        return self.session.phase

    def _require(self, operation: str, turns_exhausted: Optional[bool] = None) -> None:
        """检查当前阶段（及回合状态）是否允许该操作"""
        allowed = _TRANSITIONS[operation]
        s = self.session
        if s.phase not in allowed:
            raise PhaseViolation(f"{operation} 不能在 {s.phase.value} 阶段调用")
        if turns_exhausted is not None and s.turns_exhausted != turns_exhausted:
            state = "未结束" if turns_exhausted else "已结束"
            raise PhaseViolation(
                f"{operation}: {s.phase.value} 阶段回合{state} "
                f"({s.current_index}/{s.player_count})"
            )

    # ============================================================
    #  外部触发
    # ============================================================

    def start_game(self, names: Sequence[Optional[str]]) -> None:
        """设置 → 写推文"""
        self._require("start_game")
        if not self.min_players <= len(names) <= self.max_players:
            raise ValueError(
                f"玩家人数必须在 {self.min_players}~{self.max_players} 之间: {len(names)}"
            )
        self.session.initialize_game(normalize_player_names(names))

    def submit_tweet(self, text: str) -> ActionResult:
        self._require("submit_tweet", turns_exhausted=False)
        return self.session.submit_tweet(text)

    def begin_voting(self) -> None:
        """写推文 → 投票（需所有人已提交）"""
        self._require("begin_voting", turns_exhausted=True)
        self.session.start_voting_phase()

    def submit_vote(self, target_index: int) -> ActionResult:
        self._require("submit_vote", turns_exhausted=False)
        return self.session.submit_vote(target_index)

    def show_results(self) -> List[RankingEntry]:
        """投票 → 结果（需所有人已投票），返回排名"""
        self._require("show_results", turns_exhausted=True)
        self.session.enter_result_phase()
        return self.session.get_ranking()

    def restart(self) -> None:
        """任意阶段 → 设置"""
        self._require("restart")
        self.session.reset()

    # ============================================================
    #  自动对局
    # ============================================================

    def run_auto_game(
        self, names: Sequence[Optional[str]], strategies: Sequence[AIStrategy]
    ) -> List[RankingEntry]:
        """由自动玩家跑完整局，返回最终排名"""
        if len(strategies) != len(names):
            raise ValueError(f"策略数 ({len(strategies)}) 与玩家数 ({len(names)}) 不一致")

        self.start_game(names)
        s = self.session

        while not s.turns_exhausted:
            idx = s.current_index
            player = s.players[idx]
            text = strategies[idx].compose_tweet(player, s)
            if not self.submit_tweet(text):
                # 策略给出空推文时用手牌兜底
                logger.warning("%s 的推文被拒绝，使用第一张手牌", player.name)
                self.submit_tweet(compose_text(player.hand[:1]) or player.name)

        self.begin_voting()
        while not s.turns_exhausted:
            idx = s.current_index
            target = strategies[idx].decide_vote(idx, s)
            result = self.submit_vote(target)
            if not result:
                fallback = s.get_votable_players(idx)[0][0]
                logger.warning(
                    "%s 的投票被拒绝 (%s)，改投 %d",
                    s.players[idx].name, result.reason.value, fallback,
                )
                self.submit_vote(fallback)

        return self.show_results()
