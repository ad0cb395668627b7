"""LLM AI - 基于大语言模型拼推文与投票"""

import asyncio
import json
import logging
import os
from typing import List, Optional, Tuple

from openai import AsyncOpenAI

from src.engine.card import Card, CardCategory, compose_text
from src.game.player import PlayerRecord
from src.game.game_state import SessionState
from src.ai.rule_ai import RuleAI

logger = logging.getLogger(__name__)

# 超时上限（秒）
LLM_TIMEOUT = 10

# 推文长度上限
MAX_TWEET_LENGTH = 140

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
DEFAULT_MODEL = "deepseek-chat"

DEFAULT_CHARACTER_PROMPT = (
    "你是一个爱发推文的派对游戏玩家，幽默、接地气，喜欢制造反差笑点。"
)

# 角色人设（按玩家名查找，未登记的玩家使用默认人设）
CHARACTER_PROMPTS = {
    "小明": (
        "你是「小明」，一个爱讲冷笑话的程序员。"
        "你偏爱自嘲和反转，喜欢把平凡小事说得一本正经。"
    ),
    "小红": (
        "你是「小红」，一个元气满满的大学生。"
        "你喜欢夸张的语气和热血的结尾，越离谱越开心。"
    ),
    "阿强": (
        "你是「阿强」，一个嘴硬心软的健身教练。"
        "你喜欢把任何事都说成挑战，结尾总要不服输。"
    ),
    "小美": (
        "你是「小美」，一个文艺又丧丧的插画师。"
        "你偏爱深夜情绪和治愈系收尾。"
    ),
    "老王": (
        "你是「老王」，一个见多识广的中年上班族。"
        "你说话慢条斯理，最爱老板和周一相关的梗。"
    ),
    "阿珍": (
        "你是「阿珍」，一个爱八卦的吃货。"
        "你喜欢「听说」开头，和吃有关的一切都能让你投票。"
    ),
}

CATEGORY_NAME = {
    CardCategory.OPENING: "开头",
    CardCategory.MIDDLE: "中段",
    CardCategory.ENDING: "结尾",
}


# ============================================================
#  Prompt 构建
# ============================================================

def _hand_lines(player: PlayerRecord) -> str:
    """手牌 → 按类别分行的文本"""
    lines = []
    for category in CardCategory:
        texts = " / ".join(c.text for c in player.cards_of(category))
        lines.append(f"{CATEGORY_NAME[category]}: {texts or '（无）'}")
    return "\n".join(lines)


def _build_tweet_prompt(player: PlayerRecord, character: str) -> str:
    """构建拼推文 prompt"""
    char_prompt = CHARACTER_PROMPTS.get(character, DEFAULT_CHARACTER_PROMPT)
    return f"""{char_prompt}

你正在玩「推文接龙」。请只用下面手牌中的卡牌文本，按 开头 → 中段 → 结尾 的顺序拼出一条最有趣的推文。

【你的手牌({player.hand_size}张)】
{_hand_lines(player)}

【输出格式】严格返回 JSON，不要输出其他内容：
{{
  "cards": ["开头卡文本", "中段卡文本", "结尾卡文本"],
  "comment": "一句话解说你的创作思路（15字以内）"
}}"""


def _build_vote_prompt(voter_index: int, state: SessionState, character: str) -> str:
    """构建投票 prompt（匿名展示其他玩家的推文）"""
    lines = []
    for i, p in state.get_votable_players(voter_index):
        lines.append(f"{i}: {p.submitted_text or '（未提交）'}")
    tweets = "\n".join(lines)
    char_prompt = CHARACTER_PROMPTS.get(character, DEFAULT_CHARACTER_PROMPT)

    return f"""{char_prompt}

你正在玩「推文接龙」的投票环节。请从下面的推文中选出你认为最有趣的一条（不能选自己）。

【候选推文】
{tweets}

【输出格式】严格返回 JSON，不要输出其他内容：
{{
  "index": 候选推文前面的序号,
  "comment": "一句话解说你的投票理由（15字以内）"
}}"""


# ============================================================
#  JSON 响应解析
# ============================================================

def _extract_json(text: str) -> Optional[dict]:
    """从 LLM 返回文本中提取 JSON 对象（兼容 markdown 代码块包裹）"""
    text = text.strip()
    # 去除 markdown 代码块
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # 尝试找到第一个 { 和最后一个 }
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _match_hand_cards(card_texts: List[str], player: PlayerRecord) -> Optional[List[Card]]:
    """把文本逐个匹配到手牌（每张牌只能用一次），匹配失败返回 None"""
    remaining = list(player.hand)
    matched: List[Card] = []
    for t in card_texts:
        t = str(t).strip()
        card = next((c for c in remaining if c.text == t), None)
        if card is None:
            return None
        remaining.remove(card)
        matched.append(card)
    return matched


# ============================================================
#  LlmAI 类
# ============================================================

class LlmAI:
    """基于 LLM 的推文 AI 策略。

    提供两套接口：
    - compose_tweet / decide_vote：同步方法，满足 AIStrategy Protocol，内部 fallback 到 RuleAI
    - async_compose_tweet / async_decide_vote：异步方法，供异步驱动层 await 调用
    """

    def __init__(
        self,
        character: str,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        fallback: Optional[RuleAI] = None,
    ):
        self.character = character
        self.model = model
        self._fallback = fallback or RuleAI()

        # 若未配置 API key，仅使用 fallback
        self._enabled = bool(api_key)
        if self._enabled:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        else:
            self._client = None
            logger.warning("LlmAI(%s): 未配置 API key，将使用 RuleAI fallback", character)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ----------------------------------------------------------
    #  同步接口（AIStrategy Protocol 兼容，fallback 到 RuleAI）
    # ----------------------------------------------------------

    def compose_tweet(self, player: PlayerRecord, state: SessionState) -> str:
        return self._fallback.compose_tweet(player, state)

    def decide_vote(self, voter_index: int, state: SessionState) -> int:
        return self._fallback.decide_vote(voter_index, state)

    # ----------------------------------------------------------
    #  LLM 通用调用（带超时 + 错误处理）
    # ----------------------------------------------------------

    async def _call_llm(self, prompt: str) -> Optional[str]:
        """调用 LLM API，返回文本响应。超时或异常返回 None。"""
        if not self._enabled or self._client is None:
            return None
        try:
            resp = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=0.9,
                    max_tokens=256,
                ),
                timeout=LLM_TIMEOUT,
            )
            content = resp.choices[0].message.content or ""
            logger.info("LlmAI(%s) 响应: %s", self.character, content[:200])
            return content
        except asyncio.TimeoutError:
            logger.warning("LlmAI(%s): LLM 调用超时(%ds)", self.character, LLM_TIMEOUT)
            return None
        except Exception as e:
            logger.warning("LlmAI(%s): LLM 调用异常: %s", self.character, e)
            return None

    # ----------------------------------------------------------
    #  异步拼推文
    # ----------------------------------------------------------

    async def async_compose_tweet(
        self, player: PlayerRecord, state: SessionState
    ) -> Tuple[str, str]:
        """异步拼推文，返回 (text, comment)。失败时 fallback 到 RuleAI。"""
        raw = await self._call_llm(_build_tweet_prompt(player, self.character))
        if raw is not None:
            result = self._parse_tweet_response(raw, player)
            if result is not None:
                return result
        return self._fallback.compose_tweet(player, state), ""

    def _parse_tweet_response(
        self, raw: str, player: PlayerRecord
    ) -> Optional[Tuple[str, str]]:
        """解析推文响应：卡牌必须来自手牌，拼接后非空且不超长"""
        data = _extract_json(raw)
        if data is None:
            logger.warning("LlmAI(%s): JSON 解析失败", self.character)
            return None

        card_texts = data.get("cards")
        if not card_texts or not isinstance(card_texts, list):
            logger.warning("LlmAI(%s): cards 字段为空或非数组", self.character)
            return None

        cards = _match_hand_cards(card_texts, player)
        if cards is None:
            logger.warning("LlmAI(%s): 使用了手牌中不存在的卡牌", self.character)
            return None

        text = compose_text(cards)
        if not text or len(text) > MAX_TWEET_LENGTH:
            logger.warning("LlmAI(%s): 推文为空或超长 (%d)", self.character, len(text))
            return None
        return text, str(data.get("comment", ""))

    # ----------------------------------------------------------
    #  异步投票
    # ----------------------------------------------------------

    async def async_decide_vote(
        self, voter_index: int, state: SessionState
    ) -> Tuple[int, str]:
        """异步投票，返回 (target_index, comment)。失败时 fallback 到 RuleAI。"""
        raw = await self._call_llm(_build_vote_prompt(voter_index, state, self.character))
        if raw is not None:
            result = self._parse_vote_response(raw, voter_index, state)
            if result is not None:
                return result
        return self._fallback.decide_vote(voter_index, state), ""

    def _parse_vote_response(
        self, raw: str, voter_index: int, state: SessionState
    ) -> Optional[Tuple[int, str]]:
        """解析投票响应：序号必须是合法的其他玩家"""
        data = _extract_json(raw)
        if data is None:
            logger.warning("LlmAI(%s): JSON 解析失败", self.character)
            return None

        index = data.get("index")
        if isinstance(index, str) and index.strip().isdigit():
            index = int(index.strip())
        if isinstance(index, bool) or not isinstance(index, int):
            logger.warning("LlmAI(%s): 投票序号非法 index=%r", self.character, index)
            return None

        valid = {i for i, _ in state.get_votable_players(voter_index)}
        if index not in valid:
            logger.warning("LlmAI(%s): 投票对象不可选 index=%d", self.character, index)
            return None
        return index, str(data.get("comment", ""))


# ============================================================
#  工厂函数：从环境变量创建 LLM AI 实例
# ============================================================

def create_llm_players(names: List[str]) -> List[LlmAI]:
    """根据环境变量为每位玩家创建 LlmAI 实例。

    环境变量命名规则：
      AI_PLAYER{i}_API_KEY / AI_PLAYER{i}_BASE_URL / AI_PLAYER{i}_MODEL
    未配置 API key 的玩家自动 fallback 到 RuleAI。
    """
    players: List[LlmAI] = []
    for i, name in enumerate(names):
        idx = i + 1  # 环境变量从 1 开始
        players.append(LlmAI(
            character=name,
            api_key=os.getenv(f"AI_PLAYER{idx}_API_KEY", ""),
            base_url=os.getenv(f"AI_PLAYER{idx}_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv(f"AI_PLAYER{idx}_MODEL", DEFAULT_MODEL),
        ))
    return players
