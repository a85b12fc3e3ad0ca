# uid_hub/grammar.py
"""
本模块以“数据”的形式声明 UID 的段语法（语法表）。

UID 的文本形式为 `@owner:module:tier1:name[:tier2...][:doc]`。
新增 `tier1` 类别只是一次数据更新（`GrammarTable.register_tier1`），
不需要修改任何解析逻辑。
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from uid_hub.exceptions import EmptySegmentError, MalformedUIDError

if TYPE_CHECKING:
    from uid_hub.config import GrammarConfig

SEPARATOR = ":"
OWNER_PREFIX = "@"
DOC_SUFFIX = "doc"
INDEX_OPEN = "["
INDEX_CLOSE = "]"
MIN_SEGMENTS = 4
"""owner、module、tier1、name 四个必需段。"""

DEFAULT_TIER1: frozenset[str] = frozenset(
    {
        "api",
        "class",
        "constant",
        "definedtypes",
        "doc",
        "endpoint",
        "enum",
        "function",
        "interface",
        "method",
        "module",
        "variable",
    }
)


def check_text_segment(value: str, raw: str = "", position: int | None = None) -> None:
    """
    校验单个文本段是否合法。

    规则：非空；括号索引必须配对、不可嵌套、不可为空；
    分隔符只允许出现在括号索引内部。

    Raises:
        EmptySegmentError: 段为空。
        MalformedUIDError: 括号不配对或段中出现了裸分隔符。
    """
    if not value:
        raise EmptySegmentError(
            f"Empty segment at position {position} in {raw!r}", raw, position
        )
    depth = 0
    index_start = -1
    for i, ch in enumerate(value):
        if ch == INDEX_OPEN:
            if depth:
                raise MalformedUIDError(
                    f"Nested bracket index in segment {value!r}", raw, position
                )
            depth = 1
            index_start = i
        elif ch == INDEX_CLOSE:
            if not depth:
                raise MalformedUIDError(
                    f"Unbalanced ']' in segment {value!r}", raw, position
                )
            if i == index_start + 1:
                raise MalformedUIDError(
                    f"Empty bracket index in segment {value!r}", raw, position
                )
            depth = 0
        elif ch == SEPARATOR and not depth:
            raise MalformedUIDError(
                f"Separator outside bracket index in segment {value!r}", raw, position
            )
    if depth:
        raise MalformedUIDError(f"Unclosed '[' in segment {value!r}", raw, position)


class GrammarTable:
    """
    UID 段语法的声明式描述。

    已知 `tier1` 集合采用写时复制：注册新类别时在锁内构建新的 frozenset
    并整体替换，读取方无需加锁。`revision` 在每次变更时递增，
    解析缓存以它作为键的一部分。
    """

    def __init__(self, tier1: Iterable[str] = DEFAULT_TIER1, *, strict: bool = True):
        """
        初始化语法表。

        Args:
            tier1: 初始的已知 `tier1` 类别。
            strict: 为 False 时接受任意 `tier1`（仍需是合法的文本段）。
        """
        self._lock = threading.Lock()
        self._tier1: frozenset[str] = frozenset()
        self._revision = 0
        self.strict = strict
        self.register_tier1(*tier1)

    @classmethod
    def from_config(cls, config: "GrammarConfig") -> "GrammarTable":
        """根据 `GrammarConfig` 构建语法表：内置类别加上配置的额外类别。"""
        table = cls(strict=config.strict_tier1)
        table.register_tier1(*config.extra_tier1)
        return table

    @property
    def segment_separator(self) -> str:
        return SEPARATOR

    @property
    def owner_prefix(self) -> str:
        return OWNER_PREFIX

    @property
    def doc_suffix(self) -> str:
        return DOC_SUFFIX

    @property
    def min_segments(self) -> int:
        return MIN_SEGMENTS

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def known_tier1(self) -> list[str]:
        """返回已知 `tier1` 类别的有序快照。"""
        return sorted(self._tier1)

    def is_known_tier1(self, value: str) -> bool:
        if not self.strict:
            return True
        return value in self._tier1

    def register_tier1(self, *values: str) -> None:
        """
        登记一个或多个新的 `tier1` 类别。

        Raises:
            MalformedUIDError: 类别本身不是合法的文本段，或以 `@` 开头。
        """
        for value in values:
            check_text_segment(value, raw=value)
            if value.startswith(OWNER_PREFIX):
                raise MalformedUIDError(
                    f"tier1 category may not start with {OWNER_PREFIX!r}: {value!r}",
                    value,
                )
        with self._lock:
            new_values = frozenset(values) - self._tier1
            if not new_values:
                return
            self._tier1 = self._tier1 | new_values
            self._revision += 1

    def __repr__(self) -> str:
        return (
            f"GrammarTable(tier1={self.known_tier1!r}, strict={self.strict!r}, "
            f"revision={self._revision})"
        )


def default_grammar() -> GrammarTable:
    """返回一个只包含内置 `tier1` 类别的全新语法表。"""
    return GrammarTable(DEFAULT_TIER1)
