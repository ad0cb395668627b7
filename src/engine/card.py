"""卡牌定义 - 推文接龙游戏的卡牌数据模型与卡库"""

import json
from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union


class CardCategory(str, Enum):
    """卡牌类别：推文的开头 / 中段 / 结尾"""
    OPENING = "Opening"     # 开头
    MIDDLE = "Middle"       # 中段
    ENDING = "Ending"       # 结尾


@dataclass(frozen=True)
class Card:
    """一张推文卡牌（加载后只读）"""
    id: str
    text: str
    category: CardCategory

    def __repr__(self) -> str:
        return f"{self.id}:{self.text}"


# 内置卡库：(类别, 文本)，每类 20 张
_BUILTIN_TEXTS = {
    CardCategory.OPENING: [
        "早上好", "说真的", "刚刚", "突然想起", "今天", "听说", "不瞒你说",
        "深夜碎碎念", "周一的我", "我宣布", "有没有人和我一样", "重大消息",
        "路过一下", "家人们", "熬夜之后", "老板说", "忍不住想说", "下班路上",
        "妈妈问我", "终于",
    ],
    CardCategory.MIDDLE: [
        "又一次", "把咖啡洒在了键盘上", "在地铁上睡着了", "被猫嫌弃了",
        "把闹钟关了五次", "吃了三碗饭", "和外卖小哥聊了人生", "忘了带钥匙",
        "在会议上打了个喷嚏", "把周末过成了周一", "买了一堆用不上的东西",
        "学会了一道新菜", "追完了整部剧", "跑了五公里", "在楼下迷路了",
        "收到了神秘包裹", "把手机掉进了汤里", "认真思考了五分钟",
        "和自己吵了一架", "偷偷多睡了一小时",
    ],
    CardCategory.ENDING: [
        "太难了吧", "人生巅峰", "求安慰", "笑死", "明天继续", "就这样吧",
        "有被治愈到", "谁懂啊", "我不服", "下次一定", "感觉良好", "破防了",
        "血赚", "这合理吗", "晚安", "冲鸭", "小问题", "爱了爱了",
        "就很离谱", "完美收工",
    ],
}

_ID_PREFIX = {
    CardCategory.OPENING: "opening",
    CardCategory.MIDDLE: "middle",
    CardCategory.ENDING: "ending",
}


def create_catalog() -> List[Card]:
    """创建内置卡库（60 张，每类 20 张）"""
    catalog: List[Card] = []
    for category, texts in _BUILTIN_TEXTS.items():
        prefix = _ID_PREFIX[category]
        for i, text in enumerate(texts, start=1):
            catalog.append(Card(id=f"{prefix}_{i:02d}", text=text, category=category))

    assert len(catalog) == 60, f"卡库数量错误: {len(catalog)}"
    return catalog


def load_catalog(path: Union[str, Path]) -> List[Card]:
    """
    从 JSON 文件加载卡库。
    文件格式：[{"id": "...", "text": "...", "category": "Opening|Middle|Ending"}, ...]
    字段缺失或类别非法时抛出 ValueError。
    """
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError(f"卡库格式错误: 顶层必须是数组 ({path})")

    catalog: List[Card] = []
    for i, item in enumerate(raw):
        try:
            card_id = str(item["id"])
            text = str(item["text"])
            category = CardCategory(item["category"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"第 {i} 张卡牌缺少字段: {e}") from e
        except ValueError as e:
            raise ValueError(f"第 {i} 张卡牌类别非法: {item.get('category')!r}") from e
        catalog.append(Card(id=card_id, text=text, category=category))
    return catalog


def compose_text(cards: List[Card]) -> str:
    """按顺序拼接卡牌文本，得到一条推文"""
    return " ".join(c.text for c in cards).strip()
