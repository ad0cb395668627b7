"""玩家模型 - 每位参与者的手牌、推文、得票与投票记录"""

from dataclasses import dataclass, field
from typing import List, Optional

from src.engine.card import Card, CardCategory


@dataclass
class PlayerRecord:
    """一个玩家（只由 SessionState 修改，本身不做校验）"""
    name: str                                               # 显示名
    hand: List[Card] = field(default_factory=list)          # 全部手牌（只增不减）
    opening_cards: List[Card] = field(default_factory=list)
    middle_cards: List[Card] = field(default_factory=list)
    ending_cards: List[Card] = field(default_factory=list)
    extra_cards: List[Card] = field(default_factory=list)   # 额外抽到的牌（同时在类别列表中）
    submitted_text: Optional[str] = None                    # 提交的推文
    score: int = 0                                          # 得票数
    outbound_votes: List[str] = field(default_factory=list) # 投给了谁（玩家名）

    @property
    def hand_size(self) -> int:
        return len(self.hand)

    @property
    def has_submitted(self) -> bool:
        return self.submitted_text is not None

    @property
    def has_voted(self) -> bool:
        return len(self.outbound_votes) > 0

    def add_card(self, card: Card, extra: bool = False) -> None:
        """加入手牌并按类别归档；额外牌另在 extra_cards 中记一笔"""
        self.hand.append(card)
        if extra:
            self.extra_cards.append(card)
        if card.category == CardCategory.OPENING:
            self.opening_cards.append(card)
        elif card.category == CardCategory.MIDDLE:
            self.middle_cards.append(card)
        elif card.category == CardCategory.ENDING:
            self.ending_cards.append(card)

    def cards_of(self, category: CardCategory) -> List[Card]:
        """手牌中该类别的全部牌"""
        if category == CardCategory.OPENING:
            return list(self.opening_cards)
        if category == CardCategory.MIDDLE:
            return list(self.middle_cards)
        return list(self.ending_cards)

    def submit_composition(self, text: str) -> None:
        self.submitted_text = text

    def record_vote(self, target_name: str) -> None:
        self.outbound_votes.append(target_name)

    def add_score(self, n: int = 1) -> None:
        self.score += n
