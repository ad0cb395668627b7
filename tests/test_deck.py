"""卡库与牌堆单元测试 - 洗牌可复现、按类别抽牌、发牌规则与缺口"""

import json
import random

import pytest
from src.engine.card import Card, CardCategory, create_catalog, load_catalog, compose_text
from src.engine.deck import Deck, HAND_SIZE, EXTRA_KEY


# ============================================================
#  辅助：快速构造卡牌
# ============================================================

def card(card_id: str, category: CardCategory, text: str = "") -> Card:
    """快捷构造一张牌"""
    return Card(id=card_id, text=text or card_id, category=category)


def small_catalog(openings: int, middles: int, endings: int) -> list[Card]:
    """按数量构造一个小卡库"""
    cards = []
    for prefix, category, n in (
        ("o", CardCategory.OPENING, openings),
        ("m", CardCategory.MIDDLE, middles),
        ("e", CardCategory.ENDING, endings),
    ):
        cards.extend(card(f"{prefix}{i}", category) for i in range(n))
    return cards


# ============================================================
#  卡库
# ============================================================

class TestCatalog:
    """内置卡库与 JSON 加载"""

    def test_builtin_catalog_size(self):
        catalog = create_catalog()
        assert len(catalog) == 60
        for category in CardCategory:
            assert sum(1 for c in catalog if c.category == category) == 20

    def test_builtin_ids_unique(self):
        ids = [c.id for c in create_catalog()]
        assert len(ids) == len(set(ids))

    def test_card_is_immutable(self):
        c = card("o1", CardCategory.OPENING)
        with pytest.raises(AttributeError):
            c.text = "改写"

    def test_load_catalog_from_json(self, tmp_path):
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([
            {"id": "a", "text": "早上好", "category": "Opening"},
            {"id": "b", "text": "吃了三碗饭", "category": "Middle"},
            {"id": "c", "text": "晚安", "category": "Ending"},
        ], ensure_ascii=False), encoding="utf-8")

        catalog = load_catalog(path)
        assert [c.id for c in catalog] == ["a", "b", "c"]
        assert catalog[1].category == CardCategory.MIDDLE
        assert catalog[2].text == "晚安"

    def test_load_catalog_unknown_category(self, tmp_path):
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([{"id": "a", "text": "x", "category": "Prologue"}]))
        with pytest.raises(ValueError):
            load_catalog(path)

    def test_load_catalog_missing_field(self, tmp_path):
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([{"id": "a", "category": "Opening"}]))
        with pytest.raises(ValueError):
            load_catalog(path)

    def test_load_catalog_not_a_list(self, tmp_path):
        path = tmp_path / "cards.json"
        path.write_text(json.dumps({"id": "a"}))
        with pytest.raises(ValueError):
            load_catalog(path)

    def test_compose_text_joins_in_order(self):
        cards = [
            card("o", CardCategory.OPENING, "早上好"),
            card("m", CardCategory.MIDDLE, "被猫嫌弃了"),
            card("e", CardCategory.ENDING, "谁懂啊"),
        ]
        assert compose_text(cards) == "早上好 被猫嫌弃了 谁懂啊"
        assert compose_text([]) == ""


# ============================================================
#  加载与洗牌
# ============================================================

class TestLoadAndShuffle:
    """加载幂等、洗牌可复现"""

    def test_same_seed_same_order(self):
        catalog = create_catalog()
        d1 = Deck(catalog, seed=42)
        d2 = Deck(catalog, seed=42)
        assert d1.cards == d2.cards

    def test_different_seed_different_order(self):
        catalog = create_catalog()
        assert Deck(catalog, seed=1).cards != Deck(catalog, seed=2).cards

    def test_shuffle_is_permutation(self):
        catalog = create_catalog()
        deck = Deck(catalog, seed=7)
        assert sorted(c.id for c in deck.cards) == sorted(c.id for c in catalog)

    def test_injected_rng_matches_seed(self):
        catalog = create_catalog()
        assert Deck(catalog, rng=random.Random(42)).cards == Deck(catalog, seed=42).cards

    def test_rng_and_seed_together_rejected(self):
        with pytest.raises(ValueError):
            Deck(create_catalog(), rng=random.Random(1), seed=2)

    def test_load_all_replaces_contents(self):
        catalog = create_catalog()
        deck = Deck(seed=3)
        deck.load_all(catalog)
        deck.load_all(catalog)
        assert deck.remaining == len(catalog)
        assert deck.catalog_size == len(catalog)

    def test_duplicate_ids_rejected(self):
        catalog = [card("x", CardCategory.OPENING), card("x", CardCategory.ENDING)]
        with pytest.raises(ValueError):
            Deck(catalog)

    def test_reset_restores_full_catalog(self):
        catalog = create_catalog()
        deck = Deck(catalog, seed=5)
        for _ in range(10):
            deck.draw_any()
        assert deck.remaining == 50
        deck.reset()
        assert deck.remaining == 60
        assert {c.id for c in deck.cards} == {c.id for c in catalog}


# ============================================================
#  抽牌
# ============================================================

class TestDraw:
    """按类别抽牌与任意抽牌"""

    def setup_method(self):
        self.catalog = create_catalog()
        self.deck = Deck(seed=0)
        self.deck.load_all(self.catalog, shuffle=False)

    def test_draw_by_category_takes_last_match(self):
        assert self.deck.draw_by_category(CardCategory.OPENING).id == "opening_20"
        assert self.deck.draw_by_category(CardCategory.OPENING).id == "opening_19"
        assert self.deck.draw_by_category(CardCategory.ENDING).id == "ending_20"

    def test_draw_by_category_exhausted(self):
        for _ in range(20):
            assert self.deck.draw_by_category(CardCategory.MIDDLE) is not None
        assert self.deck.draw_by_category(CardCategory.MIDDLE) is None
        assert self.deck.count(CardCategory.MIDDLE) == 0
        assert self.deck.remaining == 40

    def test_draw_any_without_replacement(self):
        drawn = [self.deck.draw_any() for _ in range(60)]
        assert len({c.id for c in drawn}) == 60
        assert self.deck.draw_any() is None
        assert self.deck.remaining == 0


# ============================================================
#  发牌
# ============================================================

class TestDealHand:
    """每类 2 张 + 额外 2 张，缺口只记录不补牌"""

    def test_full_hand(self):
        deck = Deck(create_catalog(), seed=11)
        dealt = deck.deal_hand()
        assert len(dealt.cards) == HAND_SIZE == 8
        assert len(dealt.extras) == 2
        for category in CardCategory:
            assert sum(1 for c in dealt.categorized if c.category == category) == 2
        assert not dealt.is_short
        assert deck.remaining == 52

    def test_category_shortfall_no_backfill(self):
        deck = Deck(small_catalog(1, 4, 4), seed=0)
        dealt = deck.deal_hand()

        categorized = [c.category for c in dealt.categorized]
        assert categorized.count(CardCategory.OPENING) == 1
        assert categorized.count(CardCategory.MIDDLE) == 2
        assert categorized.count(CardCategory.ENDING) == 2
        assert dealt.missing == {"Opening": 1}
        assert len(dealt.extras) == 2
        assert deck.remaining == 2

    def test_extra_shortfall(self):
        deck = Deck(small_catalog(2, 2, 2), seed=0)
        dealt = deck.deal_hand()
        assert len(dealt.categorized) == 6
        assert dealt.extras == []
        assert dealt.missing == {EXTRA_KEY: 2}
        assert dealt.missing_total == 2
