# uid_hub/types.py
"""
本模块定义了 uid-hub 系统的核心数据类型。

`UID` 是不可变的值对象；它的规范字符串形式可以无损往返：
`parse(serialize(u)) == u`。
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from uid_hub.grammar import DOC_SUFFIX, OWNER_PREFIX, SEPARATOR, check_text_segment


class TextSegment(NamedTuple):
    """尾部的普通文本段。"""

    value: str


class RefSegment(NamedTuple):
    """尾部的嵌套 UID 引用段（类型契约）。"""

    uid: "UID"


Segment = Union[TextSegment, RefSegment]


class UID(BaseModel):
    """
    统一标识符的结构化表示。

    Attributes:
        owner: `@entity` 前缀中的实体名（不含 `@`）。
        module: 模块名。
        tier1: 一级类型类别，例如 `class`、`function`、`definedtypes`。
        name: 实体名，可以带括号索引，例如 `params[0]`。
        tier2: 按原始顺序排列的零个或多个二级段。
        doc_ref: 是否带有结尾的 `:doc`。
        type_ref: 作为类型契约的嵌套 UID。
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    module: str
    tier1: str
    name: str
    tier2: tuple[str, ...] = ()
    doc_ref: bool = False
    type_ref: Optional["UID"] = None

    @model_validator(mode="after")
    def check_structure(self) -> "UID":
        # 任何可构造的 UID 都必须能够原样往返
        heads = (self.owner, self.module, self.tier1, self.name)
        for position, value in enumerate(heads + self.tier2):
            check_text_segment(value, position=position)
            if value.startswith(OWNER_PREFIX):
                raise ValueError(
                    f"Segment {value!r} at position {position} may not start with "
                    f"{OWNER_PREFIX!r}"
                )
        if self.doc_ref and self.type_ref is not None:
            raise ValueError("doc_ref and type_ref are mutually exclusive")
        if (
            not self.doc_ref
            and self.type_ref is None
            and self.tier2
            and self.tier2[-1] == DOC_SUFFIX
        ):
            raise ValueError(
                f"A trailing {DOC_SUFFIX!r} tier2 segment must be expressed as doc_ref"
            )
        return self

    @property
    def tail(self) -> tuple[Segment, ...]:
        """name 之后的所有段：tier2 文本段，随后是可选的嵌套引用。"""
        segments: list[Segment] = [TextSegment(value) for value in self.tier2]
        if self.type_ref is not None:
            segments.append(RefSegment(self.type_ref))
        return tuple(segments)

    def _render(self, include_ref: bool) -> str:
        parts = [OWNER_PREFIX + self.owner, self.module, self.tier1, self.name]
        for segment in self.tail:
            if isinstance(segment, RefSegment):
                if include_ref:
                    parts.append(segment.uid.canonical)
            else:
                parts.append(segment.value)
        if self.doc_ref:
            parts.append(DOC_SUFFIX)
        return SEPARATOR.join(parts)

    @property
    def canonical(self) -> str:
        """规范字符串形式。"""
        return self._render(include_ref=True)

    @property
    def key(self) -> str:
        """在注册表中的身份：去掉 `type_ref` 之后的规范字符串。"""
        return self._render(include_ref=False)

    def __str__(self) -> str:
        return self.canonical


UID.model_rebuild()


class ResourceKind(str, Enum):
    """资源描述符的常见种类。"""

    FILE = "file"
    SYMBOL = "symbol"
    DOC = "doc"
    ENDPOINT = "endpoint"
    OTHER = "other"


class ResourceDescriptor(BaseModel):
    """
    一个可选的、约定俗成的资源描述符。

    注册表本身把资源视为不透明载荷，任何对象都可以注册；
    清单文件中的资源使用此模型。
    """

    kind: ResourceKind = ResourceKind.OTHER
    location: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class RegistryEntry(BaseModel):
    """注册表中的一条记录。只会被整体替换，从不原地修改。"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    uid: UID
    resource: Any
    version: int = Field(default=1, ge=1)
    registered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class IssueKind(str, Enum):
    """`validate_all` 报告的问题类型。"""

    UNRESOLVED_TYPE_REF = "UNRESOLVED_TYPE_REF"
    CYCLIC_TYPE_REF = "CYCLIC_TYPE_REF"


class ValidationIssue(BaseModel):
    """以数据形式报告的一个交叉引用问题。"""

    kind: IssueKind
    uid: str
    message: str
    chain: list[str] = Field(default_factory=list)
