# uid_hub/cli/state.py
"""定义 CLI 应用的共享状态对象。"""

from __future__ import annotations

from typing import TYPE_CHECKING

from uid_hub.grammar import GrammarTable

if TYPE_CHECKING:
    from uid_hub.config import UIDHubConfig


class State:
    """一个简单的类，用于通过 Typer 上下文传递共享状态。"""

    def __init__(self, config: "UIDHubConfig") -> None:
        """初始化状态对象，并根据配置构建语法表。

        Args:
            config: uid-hub 的主配置对象。
        """
        self.config = config
        self.grammar = GrammarTable.from_config(config.grammar)
