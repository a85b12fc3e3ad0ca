# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

from collections.abc import Generator
from typing import Any

import pytest
from pytest_mock import MockerFixture
from rich.console import Console

from uid_hub.grammar import GrammarTable, default_grammar
from uid_hub.parser import clear_parse_cache
from uid_hub.registry import Registry


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture(autouse=True)
def fresh_parse_cache() -> Generator[None, None, None]:
    """每个测试前后清空解析缓存，避免测试间相互影响。"""
    clear_parse_cache()
    yield
    clear_parse_cache()


@pytest.fixture
def grammar() -> GrammarTable:
    """提供一个只包含内置类别的全新语法表。"""
    return default_grammar()


@pytest.fixture
def registry(grammar: GrammarTable) -> Registry:
    """提供一个使用独立语法表的空注册表。"""
    return Registry(grammar)
