"""推文接龙自动对局 - 主入口"""

import argparse
import asyncio
import logging
import random
from typing import List, Optional

from src.engine.card import create_catalog, load_catalog
from src.engine.deck import Deck
from src.game.game_state import SessionState
from src.game.controller import PhaseController, MIN_PLAYERS, MAX_PLAYERS
from src.ai.rule_ai import RuleAI
from src.ai.llm_ai import LlmAI, create_llm_players
from src.ui.renderer import TerminalRenderer


DEFAULT_NAMES = ["小明", "小红", "阿强", "小美", "老王", "阿珍"]


def build_controller(catalog_path: Optional[str], seed: Optional[int]) -> PhaseController:
    """组装引擎：一个牌堆、一个会话、一个控制器"""
    catalog = load_catalog(catalog_path) if catalog_path else create_catalog()
    deck = Deck(catalog, seed=seed)
    session = SessionState(deck)
    return PhaseController(session)


def create_rule_players(count: int, seed: Optional[int]) -> List[RuleAI]:
    """创建规则 AI（指定 seed 时每人使用独立的可复现随机源）"""
    if seed is None:
        return [RuleAI() for _ in range(count)]
    return [RuleAI(rng=random.Random(seed + i)) for i in range(count)]


def run_one_game(gc: PhaseController, names: List[str], strategies, renderer: TerminalRenderer) -> None:
    """运行一局完整对局"""
    s = gc.session

    renderer.clear()
    renderer.print_header("🐦 推文接龙开始")
    gc.start_game(names)
    renderer.show_deal(s.get_all_players(), s.deck.remaining)
    renderer.pause(1.0)

    # 写推文
    renderer.print_header("✍️ 推文创作阶段")
    while not s.turns_exhausted:
        idx = s.get_current_player_index()
        player = s.get_current_player()
        result = gc.submit_tweet(strategies[idx].compose_tweet(player, s))
        if not result:
            renderer.show_rejected(player, result)
            gc.submit_tweet(player.name)
        renderer.show_tweet(player)
        renderer.pause()

    # 投票
    gc.begin_voting()
    while not s.turns_exhausted:
        idx = s.get_current_player_index()
        voter = s.get_current_player()
        target = strategies[idx].decide_vote(idx, s)
        result = gc.submit_vote(target)
        if not result:
            renderer.show_rejected(voter, result)
            target = s.get_votable_players(idx)[0][0]
            gc.submit_vote(target)
        renderer.show_vote(voter, s.players[target])
        renderer.pause(0.5)

    renderer.show_ranking(gc.show_results())


async def run_one_game_async(
    gc: PhaseController, names: List[str], players: List[LlmAI], renderer: TerminalRenderer
) -> None:
    """异步运行一局，推文与投票由 LLM 决定（失败时 fallback 到规则 AI）"""
    s = gc.session

    renderer.clear()
    renderer.print_header("🐦 推文接龙开始 (LLM)")
    gc.start_game(names)
    renderer.show_deal(s.get_all_players(), s.deck.remaining)

    renderer.print_header("✍️ 推文创作阶段")
    while not s.turns_exhausted:
        idx = s.get_current_player_index()
        player = s.get_current_player()
        text, comment = await players[idx].async_compose_tweet(player, s)
        result = gc.submit_tweet(text)
        if not result:
            renderer.show_rejected(player, result)
            gc.submit_tweet(player.name)
        renderer.show_tweet(player, comment)

    gc.begin_voting()
    while not s.turns_exhausted:
        idx = s.get_current_player_index()
        voter = s.get_current_player()
        target, comment = await players[idx].async_decide_vote(idx, s)
        result = gc.submit_vote(target)
        if not result:
            renderer.show_rejected(voter, result)
            target = s.get_votable_players(idx)[0][0]
            gc.submit_vote(target)
        renderer.show_vote(voter, s.players[target], comment)

    renderer.show_ranking(gc.show_results())


def main():
    """命令行入口"""
    parser = argparse.ArgumentParser(description="推文接龙自动对局")
    parser.add_argument("--players", type=int, default=3,
                        help=f"玩家人数 {MIN_PLAYERS}~{MAX_PLAYERS} (默认3)")
    parser.add_argument("--names", nargs="+", help="玩家名（按回合顺序），优先于 --players")
    parser.add_argument("--seed", type=int, default=None, help="随机种子（可复现对局）")
    parser.add_argument("--catalog", default=None, help="卡库 JSON 文件路径 (默认使用内置卡库)")
    parser.add_argument("--rounds", type=int, default=1, help="对局数 (默认1)")
    parser.add_argument("--delay", type=float, default=0.8, help="每步延迟秒数 (默认0.8)")
    parser.add_argument("--fast", action="store_true", help="快速模式 (无延迟)")
    parser.add_argument("--llm", action="store_true", help="使用 LLM AI (读取 AI_PLAYER{i}_* 环境变量)")
    parser.add_argument("--verbose", action="store_true", help="输出调试日志")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    names = args.names or DEFAULT_NAMES[:args.players]
    if not MIN_PLAYERS <= len(names) <= MAX_PLAYERS:
        parser.error(f"玩家人数必须在 {MIN_PLAYERS}~{MAX_PLAYERS} 之间")

    delay = 0.0 if args.fast else args.delay
    renderer = TerminalRenderer(delay=delay)
    gc = build_controller(args.catalog, args.seed)
    gc.on_signal(renderer.make_signal_callback())

    for i in range(args.rounds):
        if i > 0:
            gc.restart()
        if args.rounds > 1:
            print(f"\n{'=' * 60}")
            print(f"  第 {i + 1}/{args.rounds} 局")
            print(f"{'=' * 60}")

        if args.llm:
            players = create_llm_players(names)
            asyncio.run(run_one_game_async(gc, names, players, renderer))
        else:
            strategies = create_rule_players(len(names), args.seed)
            run_one_game(gc, names, strategies, renderer)


if __name__ == "__main__":
    main()
