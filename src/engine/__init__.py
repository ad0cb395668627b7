# 卡牌与牌堆模块
from .card import Card, CardCategory, create_catalog, load_catalog, compose_text
from .deck import Deck, DealtHand, CARDS_PER_CATEGORY, EXTRA_CARDS, HAND_SIZE
