"""LlmAI 单元测试 - 响应解析、合法性校验与 fallback（不访问网络）"""

import asyncio
import random

import pytest
from src.engine.card import Card, CardCategory, compose_text, create_catalog
from src.engine.deck import Deck
from src.game.player import PlayerRecord
from src.game.game_state import SessionState
from src.ai.rule_ai import RuleAI
from src.ai.llm_ai import (
    LlmAI, CHARACTER_PROMPTS, DEFAULT_CHARACTER_PROMPT,
    _build_tweet_prompt, _build_vote_prompt, _extract_json, create_llm_players,
)


# ============================================================
#  辅助工具
# ============================================================

def _make_state() -> SessionState:
    s = SessionState(Deck(create_catalog(), seed=0))
    s.initialize_game(["A", "B", "C"])
    for p in s.players:
        s.submit_tweet(f"{p.name} 的推文")
    s.start_voting_phase()
    return s


def _make_player() -> PlayerRecord:
    p = PlayerRecord(name="A")
    p.add_card(Card(id="o", text="早上好", category=CardCategory.OPENING))
    p.add_card(Card(id="m", text="被猫嫌弃了", category=CardCategory.MIDDLE))
    p.add_card(Card(id="e", text="谁懂啊", category=CardCategory.ENDING))
    return p


def _offline_ai() -> LlmAI:
    """未配置 API key 的 LlmAI（只走 fallback）"""
    return LlmAI(character="A", api_key="", fallback=RuleAI(rng=random.Random(0)))


# ============================================================
#  JSON 提取
# ============================================================

class TestExtractJson:

    def test_plain(self):
        assert _extract_json('{"index": 1}') == {"index": 1}

    def test_markdown_block(self):
        raw = '```json\n{"index": 2, "comment": "好笑"}\n```'
        assert _extract_json(raw) == {"index": 2, "comment": "好笑"}

    def test_surrounding_text(self):
        assert _extract_json('我选这个: {"index": 0} 就这样') == {"index": 0}

    def test_garbage(self):
        assert _extract_json("完全不是 JSON") is None

    def test_non_object(self):
        assert _extract_json("[1, 2]") is None


# ============================================================
#  Prompt 人设
# ============================================================

class TestPrompts:
    """已登记的玩家使用自己的人设，其余使用默认人设"""

    def test_tweet_prompt_uses_character(self):
        prompt = _build_tweet_prompt(_make_player(), "小明")
        assert prompt.startswith(CHARACTER_PROMPTS["小明"])
        assert DEFAULT_CHARACTER_PROMPT not in prompt

    def test_vote_prompt_uses_character(self):
        prompt = _build_vote_prompt(0, _make_state(), "阿珍")
        assert prompt.startswith(CHARACTER_PROMPTS["阿珍"])
        assert "1: B 的推文" in prompt
        assert "0: A 的推文" not in prompt

    def test_unknown_character_uses_default(self):
        assert _build_tweet_prompt(_make_player(), "路人甲").startswith(DEFAULT_CHARACTER_PROMPT)
        assert _build_vote_prompt(0, _make_state(), "路人甲").startswith(DEFAULT_CHARACTER_PROMPT)


# ============================================================
#  推文响应解析
# ============================================================

class TestParseTweet:

    def setup_method(self):
        self.ai = _offline_ai()
        self.player = _make_player()

    def test_valid_cards(self):
        raw = '{"cards": ["早上好", "被猫嫌弃了", "谁懂啊"], "comment": "反差"}'
        assert self.ai._parse_tweet_response(raw, self.player) == ("早上好 被猫嫌弃了 谁懂啊", "反差")

    def test_text_matches_composed_cards(self):
        raw = '{"cards": ["  谁懂啊 ", "早上好"]}'
        text, _ = self.ai._parse_tweet_response(raw, self.player)
        assert text == compose_text([self.player.ending_cards[0], self.player.opening_cards[0]])
        assert text == "谁懂啊 早上好"

    def test_card_not_in_hand(self):
        raw = '{"cards": ["早上好", "中了彩票"]}'
        assert self.ai._parse_tweet_response(raw, self.player) is None

    def test_card_used_twice(self):
        raw = '{"cards": ["早上好", "早上好"]}'
        assert self.ai._parse_tweet_response(raw, self.player) is None

    def test_empty_cards(self):
        assert self.ai._parse_tweet_response('{"cards": []}', self.player) is None


# ============================================================
#  投票响应解析
# ============================================================

class TestParseVote:

    def setup_method(self):
        self.ai = _offline_ai()
        self.state = _make_state()

    def test_valid_index(self):
        assert self.ai._parse_vote_response('{"index": 2, "comment": "笑死"}', 0, self.state) == (2, "笑死")

    def test_string_index(self):
        assert self.ai._parse_vote_response('{"index": "1"}', 0, self.state) == (1, "")

    @pytest.mark.parametrize("raw", ['{"index": 0}', '{"index": 5}', '{"index": true}', '{"comment": "x"}'])
    def test_invalid_index(self, raw):
        assert self.ai._parse_vote_response(raw, 0, self.state) is None


# ============================================================
#  fallback
# ============================================================

class TestFallback:

    def test_disabled_without_key(self):
        assert not _offline_ai().enabled

    def test_async_compose_falls_back(self):
        ai = _offline_ai()
        player = _make_player()
        text, comment = asyncio.run(ai.async_compose_tweet(player, _make_state()))
        assert text == "早上好 被猫嫌弃了 谁懂啊"
        assert comment == ""

    def test_async_vote_falls_back(self):
        ai = _offline_ai()
        state = _make_state()
        target, comment = asyncio.run(ai.async_decide_vote(1, state))
        assert target in (0, 2)
        assert comment == ""

    def test_create_players_from_env(self, monkeypatch):
        monkeypatch.delenv("AI_PLAYER1_API_KEY", raising=False)
        monkeypatch.delenv("AI_PLAYER2_API_KEY", raising=False)
        monkeypatch.setenv("AI_PLAYER2_MODEL", "test-model")
        players = create_llm_players(["A", "B"])
        assert [p.character for p in players] == ["A", "B"]
        assert players[1].model == "test-model"
        assert not any(p.enabled for p in players)
