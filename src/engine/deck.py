"""牌堆 - 洗牌、按类别抽牌与发牌"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .card import Card, CardCategory

logger = logging.getLogger(__name__)

# 发牌规则：每类 2 张 + 任意类别 2 张 = 8 张
CARDS_PER_CATEGORY = 2
EXTRA_CARDS = 2
HAND_SIZE = CARDS_PER_CATEGORY * len(CardCategory) + EXTRA_CARDS

# 额外牌缺口在 missing 中的键
EXTRA_KEY = "Extra"

# draw_any 可抽取的类别
_DEALABLE = (CardCategory.OPENING, CardCategory.MIDDLE, CardCategory.ENDING)


@dataclass
class DealtHand:
    """一次发牌的结果"""
    categorized: List[Card] = field(default_factory=list)
    extras: List[Card] = field(default_factory=list)
    missing: Dict[str, int] = field(default_factory=dict)   # 类别 → 缺少张数

    @property
    def cards(self) -> List[Card]:
        return self.categorized + self.extras

    @property
    def is_short(self) -> bool:
        return any(n > 0 for n in self.missing.values())

    @property
    def missing_total(self) -> int:
        return sum(self.missing.values())


class Deck:
    """未发出的卡牌集合（随发牌单调减少，reset 时重建并重新洗牌）"""

    def __init__(
        self,
        catalog: Optional[Iterable[Card]] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        # 可注入随机源，固定 seed 时洗牌结果可复现；二者只能指定其一
        if rng is not None and seed is not None:
            raise ValueError("rng 与 seed 不能同时指定")
        self._rng = rng if rng is not None else random.Random(seed)
        self._catalog: List[Card] = []
        self._cards: List[Card] = []
        if catalog is not None:
            self.load_all(catalog)

    # ============================================================
    #  加载与洗牌
    # ============================================================

    def load_all(self, catalog: Iterable[Card], shuffle: bool = True) -> None:
        """用完整卡库替换牌堆内容（重复调用结果一致），默认随后洗牌"""
        cards = list(catalog)
        seen = set()
        for c in cards:
            if c.id in seen:
                raise ValueError(f"卡库中存在重复的卡牌 id: {c.id}")
            seen.add(c.id)

        self._catalog = cards
        self._cards = list(cards)
        if shuffle:
            self.shuffle()

    def shuffle(self) -> None:
        """Fisher–Yates 洗牌"""
        cards = self._cards
        for i in range(len(cards) - 1, 0, -1):
            j = self._rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]

    def reset(self) -> None:
        """重新装入完整卡库并洗牌"""
        self.load_all(self._catalog)

    # ============================================================
    #  抽牌
    # ============================================================

    def draw_by_category(self, category: CardCategory) -> Optional[Card]:
        """抽出指定类别的最后一张牌，该类别耗尽时返回 None"""
        for i in range(len(self._cards) - 1, -1, -1):
            if self._cards[i].category == category:
                return self._cards.pop(i)
        return None

    def draw_any(self) -> Optional[Card]:
        """从剩余的开头/中段/结尾牌中等概率抽一张"""
        candidates = [i for i, c in enumerate(self._cards) if c.category in _DEALABLE]
        if not candidates:
            return None
        return self._cards.pop(self._rng.choice(candidates))

    def deal_hand(self) -> DealtHand:
        """
        为一名玩家发一手牌：
        开头/中段/结尾各 CARDS_PER_CATEGORY 张，再任意抽 EXTRA_CARDS 张。
        某类别耗尽时记录缺口并继续，不从其他类别补牌。
        """
        dealt = DealtHand()
        for category in _DEALABLE:
            for _ in range(CARDS_PER_CATEGORY):
                card = self.draw_by_category(category)
                if card is None:
                    dealt.missing[category.value] = dealt.missing.get(category.value, 0) + 1
                else:
                    dealt.categorized.append(card)

        for _ in range(EXTRA_CARDS):
            card = self.draw_any()
            if card is None:
                dealt.missing[EXTRA_KEY] = dealt.missing.get(EXTRA_KEY, 0) + 1
            else:
                dealt.extras.append(card)

        if dealt.is_short:
            logger.debug("牌堆不足: 缺 %s，剩余 %d 张", dealt.missing, self.remaining)
        return dealt

    # ============================================================
    #  查询
    # ============================================================

    @property
    def remaining(self) -> int:
        return len(self._cards)

    @property
    def catalog_size(self) -> int:
        return len(self._catalog)

    @property
    def cards(self) -> Tuple[Card, ...]:
        """当前牌序（只读快照）"""
        return tuple(self._cards)

    def count(self, category: CardCategory) -> int:
        return sum(1 for c in self._cards if c.category == category)

    def __len__(self) -> int:
        return len(self._cards)
