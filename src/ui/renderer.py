"""终端可视化渲染器 - 在终端中展示推文接龙对局过程"""

import os
import time
from typing import List

from src.engine.card import Card, CardCategory
from src.game.player import PlayerRecord
from src.game.game_state import ActionResult, GameSignal, RankingEntry, RejectReason


# 颜色常量 (ANSI)
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
MAGENTA = "\033[95m"
CYAN = "\033[96m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"

# 类别颜色映射
CATEGORY_COLOR = {
    CardCategory.OPENING: CYAN,
    CardCategory.MIDDLE: GREEN,
    CardCategory.ENDING: MAGENTA,
}

# 拒绝原因提示
REJECT_MESSAGE = {
    RejectReason.EMPTY_TWEET: "推文不能为空",
    RejectReason.SELF_VOTE: "不能投给自己",
    RejectReason.TARGET_OUT_OF_RANGE: "投票对象不存在",
    RejectReason.ALREADY_VOTED: "已经投过票了",
    RejectReason.TURNS_EXHAUSTED: "本阶段已结束",
}

# 前三名标记
RANK_LABEL = {1: "🏆 1位", 2: "🥈 2位", 3: "🥉 3位"}


class TerminalRenderer:
    """终端可视化渲染器"""

    def __init__(self, delay: float = 0.8):
        self.delay = delay  # 每步之间的延迟（秒）

    def clear(self) -> None:
        """清屏"""
        os.system("clear" if os.name != "nt" else "cls")

    def pause(self, seconds: float = 0) -> None:
        """暂停"""
        if self.delay > 0:
            time.sleep(seconds or self.delay)

    # ============================================================
    #  卡牌渲染
    # ============================================================

    @staticmethod
    def format_cards(cards: List[Card]) -> str:
        """将卡牌列表格式化为按类别着色的字符串"""
        return " ".join(
            f"{CATEGORY_COLOR.get(c.category, '')}{c.text}{RESET}" for c in cards
        )

    @staticmethod
    def format_rank(rank: int) -> str:
        return RANK_LABEL.get(rank, f"{rank}位")

    def print_header(self, title: str) -> None:
        """打印带框的标题"""
        print(f"\n{YELLOW}{BOLD}{'═' * 60}{RESET}")
        print(f"{YELLOW}{BOLD}  {title}{RESET}")
        print(f"{YELLOW}{BOLD}{'═' * 60}{RESET}\n")

    # ============================================================
    #  发牌展示
    # ============================================================

    def show_deal(self, players: List[PlayerRecord], remaining: int) -> None:
        """展示发牌结果"""
        self.print_header("🃏 发牌完成")
        for p in players:
            print(f"  {BOLD}{p.name}{RESET} ({p.hand_size}张):")
            for label, cards in (
                ("开头", p.opening_cards),
                ("中段", p.middle_cards),
                ("结尾", p.ending_cards),
            ):
                print(f"    {DIM}{label}{RESET} {self.format_cards(cards)}")
            if p.extra_cards:
                print(f"    {DIM}其中额外抽到: {self.format_cards(p.extra_cards)}{RESET}")
        print(f"\n  {DIM}牌堆剩余: {remaining} 张{RESET}\n")

    # ============================================================
    #  推文与投票展示
    # ============================================================

    def show_tweet(self, player: PlayerRecord, comment: str = "") -> None:
        print(f"  {BOLD}{player.name}{RESET}: {BLUE}{player.submitted_text}{RESET}")
        if comment:
            print(f"    {DIM}💭 {comment}{RESET}")

    def show_vote(self, voter: PlayerRecord, target: PlayerRecord, comment: str = "") -> None:
        print(f"  {BOLD}{voter.name}{RESET} → {YELLOW}{target.name}{RESET}")
        if comment:
            print(f"    {DIM}💭 {comment}{RESET}")

    def show_rejected(self, player: PlayerRecord, result: ActionResult) -> None:
        msg = REJECT_MESSAGE.get(result.reason, str(result.reason))
        print(f"  {RED}{player.name}: {msg}{RESET}")

    # ============================================================
    #  结果展示
    # ============================================================

    def show_ranking(self, ranking: List[RankingEntry]) -> None:
        """展示最终排名"""
        self.print_header("🏆 结果发表")
        for entry in ranking:
            p = entry.player
            label = self.format_rank(entry.rank)
            color = RED if entry.rank == 1 else ""
            print(f"  {color}{BOLD}{label}{RESET}  ({p.score}票)  {p.name}: {p.submitted_text or ''}")
        print()

    # ============================================================
    #  通知回调（注册到 PhaseController）
    # ============================================================

    def make_signal_callback(self):
        """创建通知回调函数，供 PhaseController.on_signal() 使用"""
        renderer = self

        def callback(signal: GameSignal) -> None:
            if signal == GameSignal.TWEETING_COMPLETE:
                renderer.print_header("📢 全员推文已提交，进入投票")
            elif signal == GameSignal.VOTING_COMPLETE:
                print(f"\n  {GREEN}全员投票完成{RESET}")
            elif signal == GameSignal.GAME_RESET:
                print(f"\n  {DIM}游戏已重置{RESET}")
            renderer.pause(0.5)

        return callback
