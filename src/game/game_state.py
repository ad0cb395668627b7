"""会话状态机 - 发牌、推文提交、投票与排名的核心引擎"""

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from src.engine.deck import Deck
from src.game.player import PlayerRecord

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    """游戏阶段"""
    SETUP = "SETUP"             # 设置玩家
    TWEETING = "TWEETING"       # 写推文
    VOTING = "VOTING"           # 投票
    RESULT = "RESULT"           # 结果


class GameSignal(str, Enum):
    """无负载通知（接收方通过查询接口读取状态）"""
    TWEETING_COMPLETE = "TWEETING_COMPLETE"
    VOTING_COMPLETE = "VOTING_COMPLETE"
    GAME_RESET = "GAME_RESET"


class RejectReason(str, Enum):
    """玩家输入被拒绝的原因"""
    EMPTY_TWEET = "EMPTY_TWEET"                     # 推文为空
    SELF_VOTE = "SELF_VOTE"                         # 投给自己
    TARGET_OUT_OF_RANGE = "TARGET_OUT_OF_RANGE"     # 投票对象不存在
    ALREADY_VOTED = "ALREADY_VOTED"                 # 本局已投过票
    TURNS_EXHAUSTED = "TURNS_EXHAUSTED"             # 本阶段回合已结束


@dataclass(frozen=True)
class ActionResult:
    """玩家操作的结果；被拒绝时状态不变"""
    ok: bool
    reason: Optional[RejectReason] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def accepted(cls) -> "ActionResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "ActionResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class RankingEntry:
    """排名中的一行"""
    rank: int
    player: PlayerRecord


@dataclass
class GameEvent:
    """操作记录"""
    phase: GamePhase
    player_index: int
    action: str                  # "tweet", "vote"
    data: Any = None             # 推文文本 / 被投票者序号


SignalListener = Callable[[GameSignal], None]


class SessionState:
    """
    一局游戏的全部状态与规则。

    持有玩家名单、牌堆、当前阶段和回合指针。本类不检查调用是否
    符合当前阶段，阶段把关由 PhaseController 负责。
    """

    def __init__(self, deck: Deck):
        self.deck = deck
        self.players: List[PlayerRecord] = []
        self.phase: GamePhase = GamePhase.SETUP
        self.current_index: int = 0              # 回合指针，== 人数 表示本阶段回合已用完
        self.events: List[GameEvent] = []
        self.shortfalls: Dict[str, Dict[str, int]] = {}  # 玩家名 → 发牌缺口
        self._listeners: List[SignalListener] = []

    # ============================================================
    #  通知
    # ============================================================

    def on_signal(self, callback: SignalListener) -> None:
        """注册通知回调"""
        self._listeners.append(callback)

    def _emit(self, signal: GameSignal) -> None:
        logger.info("通知: %s", signal.value)
        for cb in self._listeners:
            cb(signal)

    # ============================================================
    #  查询
    # ============================================================

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def turns_exhausted(self) -> bool:
        """本阶段是否所有人都已行动"""
        return self.current_index >= len(self.players)

    def get_current_player(self) -> Optional[PlayerRecord]:
        if 0 <= self.current_index < len(self.players):
            return self.players[self.current_index]
        return None

    def get_current_player_index(self) -> int:
        return self.current_index

    def get_all_players(self) -> List[PlayerRecord]:
        return list(self.players)

    def get_votable_players(
        self, voter_index: Optional[int] = None
    ) -> List[Tuple[int, PlayerRecord]]:
        """可投票对象 (序号, 玩家)，排除投票者本人；默认投票者为当前玩家"""
        if voter_index is None:
            voter_index = self.current_index
        return [(i, p) for i, p in enumerate(self.players) if i != voter_index]

    @property
    def cards_in_play(self) -> int:
        """已发到手牌中的总张数"""
        return sum(p.hand_size for p in self.players)

    # ============================================================
    #  开局与发牌
    # ============================================================

    def initialize_game(self, names: Sequence[str]) -> None:
        """按给定顺序创建玩家（即回合顺序），发牌，进入写推文阶段"""
        if len(set(names)) != len(names):
            raise ValueError(f"玩家名重复: {list(names)}")

        self.players = [PlayerRecord(name=name) for name in names]
        self.events = []
        self.shortfalls = {}
        self._deal_all()

        self.current_index = 0
        self.phase = GamePhase.TWEETING
        logger.info("开局: %d 名玩家，牌堆剩余 %d 张", len(self.players), self.deck.remaining)

    def _deal_all(self) -> None:
        """依次为每位玩家发牌；牌堆不足只记录，不中止开局"""
        for player in self.players:
            dealt = self.deck.deal_hand()
            for card in dealt.categorized:
                player.add_card(card)
            for card in dealt.extras:
                player.add_card(card, extra=True)

            if dealt.is_short:
                self.shortfalls[player.name] = dict(dealt.missing)
                logger.warning(
                    "牌堆不足: %s 只拿到 %d 张 (缺 %s)",
                    player.name, player.hand_size, dealt.missing,
                )

    # ============================================================
    #  写推文阶段
    # ============================================================

    def submit_tweet(self, text: str) -> ActionResult:
        """当前玩家提交推文；空白推文被拒绝"""
        if text is None or not text.strip():
            return ActionResult.rejected(RejectReason.EMPTY_TWEET)

        player = self.get_current_player()
        if player is None:
            return ActionResult.rejected(RejectReason.TURNS_EXHAUSTED)

        text = text.strip()
        player.submit_composition(text)
        self.events.append(GameEvent(self.phase, self.current_index, "tweet", text))
        logger.debug("%s 提交推文: %s", player.name, text)

        self.current_index += 1
        if self.turns_exhausted:
            self._emit(GameSignal.TWEETING_COMPLETE)
        return ActionResult.accepted()

    # ============================================================
    #  投票阶段
    # ============================================================

    def start_voting_phase(self) -> None:
        """回合指针归零并进入投票阶段（不改动分数、手牌、名单）"""
        self.current_index = 0
        self.phase = GamePhase.VOTING
        logger.info("进入投票阶段")

    def submit_vote(self, target_index: int) -> ActionResult:
        """当前玩家投票给 target_index；不能投自己，不能重复投"""
        voter = self.get_current_player()
        if voter is None:
            return ActionResult.rejected(RejectReason.TURNS_EXHAUSTED)
        if target_index == self.current_index:
            return ActionResult.rejected(RejectReason.SELF_VOTE)
        if not 0 <= target_index < len(self.players):
            return ActionResult.rejected(RejectReason.TARGET_OUT_OF_RANGE)
        if voter.has_voted:
            return ActionResult.rejected(RejectReason.ALREADY_VOTED)

        target = self.players[target_index]
        voter.record_vote(target.name)
        target.add_score(1)
        self.events.append(GameEvent(self.phase, self.current_index, "vote", target_index))
        logger.debug("%s 投票给 %s", voter.name, target.name)

        self.current_index += 1
        if self.turns_exhausted:
            self._emit(GameSignal.VOTING_COMPLETE)
        return ActionResult.accepted()

    # ============================================================
    #  结果阶段
    # ============================================================

    def enter_result_phase(self) -> None:
        self.phase = GamePhase.RESULT
        logger.info("进入结果阶段")

    def get_ranking(self) -> List[RankingEntry]:
        """
        按得票降序排名，同分保持原始顺序。
        同分同名次，下一个分数的名次为其位置+1（1, 1, 3, 4...）。
        """
        ordered = sorted(self.players, key=lambda p: -p.score)
        ranking: List[RankingEntry] = []
        rank = 0
        for pos, player in enumerate(ordered, start=1):
            if pos == 1 or ordered[pos - 2].score != player.score:
                rank = pos
            ranking.append(RankingEntry(rank=rank, player=player))
        return ranking

    def get_winner(self) -> Optional[PlayerRecord]:
        """得票最多的玩家（同分取名单中靠前者）"""
        if not self.players:
            return None
        return self.get_ranking()[0].player

    # ============================================================
    #  重置
    # ============================================================

    def reset(self) -> None:
        """清空名单，牌堆重新装满并洗牌，回到设置阶段"""
        self.players = []
        self.events = []
        self.shortfalls = {}
        self.current_index = 0
        self.deck.reset()
        self.phase = GamePhase.SETUP
        self._emit(GameSignal.GAME_RESET)
