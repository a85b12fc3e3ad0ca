# uid_hub/parser.py
"""
本模块负责 UID 文本与 `UID` 结构之间的相互转换。

解析是纯语法操作，从不访问注册表。同一语法表版本下的解析结果
会被缓存在一个线程安全的 LRU 缓存中（`UID` 是不可变值，可安全共享）。
"""

from __future__ import annotations

import re
import threading
from collections.abc import Hashable

import structlog
from cachetools import LRUCache

from uid_hub.exceptions import (
    EmptySegmentError,
    MalformedUIDError,
    MissingOwnerPrefixError,
    UIDSyntaxError,
    UnknownTier1Error,
)
from uid_hub.grammar import (
    INDEX_CLOSE,
    INDEX_OPEN,
    SEPARATOR,
    GrammarTable,
    check_text_segment,
    default_grammar,
)
from uid_hub.types import UID

log = structlog.get_logger(__name__)

DEFAULT_PARSE_CACHE_SIZE = 1024

# 预编译正则表达式：`base[index]` 形式的单个括号索引
RE_INDEXED_SEGMENT = re.compile(r"^(?P<base>[^\[\]]+)\[(?P<index>[^\[\]]+)\]$")

_default_grammar = default_grammar()
_cache_lock = threading.Lock()
_parse_cache: LRUCache[Hashable, UID] = LRUCache(maxsize=DEFAULT_PARSE_CACHE_SIZE)


def get_default_grammar() -> GrammarTable:
    """返回进程级的默认语法表。向它登记的类别对所有未指定语法表的解析生效。"""
    return _default_grammar


def set_parse_cache_size(maxsize: int) -> None:
    """以新的容量重建解析缓存（旧的缓存内容会被丢弃）。"""
    global _parse_cache
    if maxsize <= 0:
        raise ValueError("maxsize 必须大于 0")
    with _cache_lock:
        _parse_cache = LRUCache(maxsize=maxsize)


def clear_parse_cache() -> None:
    with _cache_lock:
        _parse_cache.clear()


def split_segments(raw: str, separator: str = SEPARATOR) -> list[str]:
    """
    按分隔符切分 UID 文本，括号索引内部的分隔符不参与切分。

    例如 `@a:b:function:f:params[x:y]` 会被切分为 5 段，
    最后一段是 `params[x:y]`。括号是否配对由段校验负责。
    """
    segments: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in raw:
        if ch == INDEX_OPEN:
            depth += 1
        elif ch == INDEX_CLOSE and depth:
            depth -= 1
        if ch == separator and not depth:
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
    segments.append("".join(current))
    return segments


def split_index(segment: str) -> tuple[str, str | None]:
    """将 `params[0]` 拆分为 `("params", "0")`；没有括号索引时索引为 None。"""
    match = RE_INDEXED_SEGMENT.match(segment)
    if not match:
        return segment, None
    return match.group("base"), match.group("index")


def _parse_segments(
    segments: list[str], raw: str, grammar: GrammarTable, offset: int = 0
) -> UID:
    """将已切分的段解析为 UID。`offset` 是首段在原始文本中的段下标。"""
    for i, value in enumerate(segments):
        if not value:
            raise EmptySegmentError(
                f"Empty segment at position {offset + i} in {raw!r}", raw, offset + i
            )
    if len(segments) < grammar.min_segments:
        raise MalformedUIDError(
            f"UID needs at least {grammar.min_segments} segments "
            f"(owner, module, tier1, name), got {len(segments)} in {raw!r}",
            raw,
            offset,
        )

    owner_segment, module, tier1, name = segments[: grammar.min_segments]
    if not owner_segment.startswith(grammar.owner_prefix):
        raise MissingOwnerPrefixError(
            f"Owner segment {owner_segment!r} must start with "
            f"{grammar.owner_prefix!r} in {raw!r}",
            raw,
            offset,
        )
    owner = owner_segment[len(grammar.owner_prefix) :]

    for i, value in enumerate((owner, module, tier1, name)):
        check_text_segment(value, raw, offset + i)
        if value.startswith(grammar.owner_prefix):
            raise MalformedUIDError(
                f"Segment {value!r} at position {offset + i} may not start with "
                f"{grammar.owner_prefix!r} in {raw!r}",
                raw,
                offset + i,
            )
    if not grammar.is_known_tier1(tier1):
        raise UnknownTier1Error(
            f"Unknown tier1 category {tier1!r} in {raw!r}; "
            f"known: {', '.join(grammar.known_tier1)}",
            raw,
            offset + 2,
        )

    tier2: list[str] = []
    doc_ref = False
    type_ref: UID | None = None
    tail = segments[grammar.min_segments :]
    for i, value in enumerate(tail):
        position = offset + grammar.min_segments + i
        if value.startswith(grammar.owner_prefix):
            # 嵌套引用吞掉剩余的所有段，包括结尾的 doc
            type_ref = _parse_segments(tail[i:], raw, grammar, position)
            break
        if i == len(tail) - 1 and value == grammar.doc_suffix:
            doc_ref = True
            break
        check_text_segment(value, raw, position)
        tier2.append(value)

    return UID(
        owner=owner,
        module=module,
        tier1=tier1,
        name=name,
        tier2=tuple(tier2),
        doc_ref=doc_ref,
        type_ref=type_ref,
    )


def parse(raw: str, grammar: GrammarTable | None = None) -> UID:
    """
    将原始 UID 文本解析为 `UID`。

    `name` 之后任何以 `@` 开头的段都会开启一个嵌套类型引用，并把剩余的全部段
    （包括末尾的 `doc`）作为嵌套 UID 递归解析。因此 `@` 不能出现在普通的
    tier2 段开头：例如 `@a:b:function:f:decorator:@cached` 中的 `@cached`
    被当作段数不足的嵌套 UID，抛出 `MalformedUIDError`。

    Args:
        raw: 形如 `@owner:module:tier1:name[:tier2...][:doc]` 的文本。
        grammar: 使用的语法表，默认为进程级默认语法表。

    Returns:
        完整填充的 `UID` 值。

    Raises:
        EmptySegmentError: 存在空段。
        MalformedUIDError: 段数不足、括号不配对或段内容非法。
        UnknownTier1Error: `tier1` 不是语法表中已知的类别。
        MissingOwnerPrefixError: 首段缺少 `@` 前缀。
    """
    if not isinstance(raw, str):
        raise MalformedUIDError(f"UID must be a string, got {type(raw).__name__}")
    grammar = grammar or _default_grammar
    key = (raw, grammar, grammar.revision, grammar.strict)
    with _cache_lock:
        cached = _parse_cache.get(key)
    if cached is not None:
        return cached

    uid = _parse_segments(split_segments(raw, grammar.segment_separator), raw, grammar)
    with _cache_lock:
        _parse_cache[key] = uid
    return uid


def serialize(uid: UID) -> str:
    """`parse` 的逆操作：返回 UID 的规范字符串形式。"""
    return uid.canonical


def try_parse(raw: str, grammar: GrammarTable | None = None) -> UID | None:
    """与 `parse` 相同，但在语法错误时返回 None 而不是抛出异常。"""
    try:
        return parse(raw, grammar)
    except UIDSyntaxError as e:
        log.debug("UID 解析失败。", raw=raw, error=str(e))
        return None


def is_valid(raw: str, grammar: GrammarTable | None = None) -> bool:
    return try_parse(raw, grammar) is not None
