"""TerminalRenderer 单元测试 - 清屏与发牌展示"""

from src.engine.card import Card, CardCategory
from src.game.player import PlayerRecord
from src.ui.renderer import TerminalRenderer
import src.ui.renderer as renderer_module


def _c(card_id: str, text: str, category: CardCategory) -> Card:
    return Card(id=card_id, text=text, category=category)


class TestClear:

    def test_clear_issues_terminal_command(self, monkeypatch):
        calls = []
        monkeypatch.setattr(renderer_module.os, "system", calls.append)
        TerminalRenderer(delay=0).clear()
        assert calls == ["clear" if renderer_module.os.name != "nt" else "cls"]


class TestShowDeal:

    def test_extras_listed_under_category_and_marked(self, capsys):
        p = PlayerRecord(name="小明")
        p.add_card(_c("o1", "早上好", CardCategory.OPENING))
        p.add_card(_c("m1", "跑了五公里", CardCategory.MIDDLE))
        p.add_card(_c("e1", "晚安", CardCategory.ENDING))
        p.add_card(_c("o2", "听说", CardCategory.OPENING), extra=True)

        TerminalRenderer(delay=0).show_deal([p], remaining=10)
        out = capsys.readouterr().out

        lines = out.splitlines()
        opening_line = next(l for l in lines if "开头" in l)
        assert "早上好" in opening_line and "听说" in opening_line
        extra_line = next(l for l in lines if "额外抽到" in l)
        assert "听说" in extra_line and "早上好" not in extra_line
        assert "(4张)" in out
        assert "牌堆剩余: 10 张" in out

    def test_no_extra_line_without_extras(self, capsys):
        p = PlayerRecord(name="小红")
        p.add_card(_c("e1", "晚安", CardCategory.ENDING))
        TerminalRenderer(delay=0).show_deal([p], remaining=0)
        assert "额外抽到" not in capsys.readouterr().out
