"""规则引擎 AI - 基于简单规则拼推文、投票，不依赖 LLM"""

import random
from typing import List, Optional

from src.engine.card import Card, CardCategory, compose_text
from src.game.player import PlayerRecord
from src.game.game_state import SessionState


class RuleAI:
    """基于简单规则的 AI 策略"""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng if rng is not None else random.Random()

    def compose_tweet(self, player: PlayerRecord, state: SessionState) -> str:
        """
        拼推文：开头、中段、结尾各随机挑一张。
        某类别没有牌时跳过；一张都挑不出来则用整手牌。
        """
        picked: List[Card] = []
        for category in CardCategory:
            options = player.cards_of(category)
            if options:
                picked.append(self._rng.choice(options))

        text = compose_text(picked)
        if not text:
            text = compose_text(player.hand)
        return text

    def decide_vote(self, voter_index: int, state: SessionState) -> int:
        """
        投票：在其他玩家中随机选一个。
        优先选已提交推文的玩家。
        """
        candidates = state.get_votable_players(voter_index)
        with_tweet = [i for i, p in candidates if p.has_submitted]
        pool = with_tweet or [i for i, _ in candidates]
        return self._rng.choice(pool)
