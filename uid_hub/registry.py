# uid_hub/registry.py
"""
本模块实现 UID 注册表：哪些 UID 存在、它们各自指向什么资源，
以及 UID 之间的类型引用是否能够解析。

并发模型：
- 所有写操作（`register`、`deregister`）由同一把锁串行化；
- 写操作构建一个新的映射并一次性替换（写时复制），
  读操作只取一次当前映射的引用，因此总能看到一致的快照且无需加锁。
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

import structlog

from uid_hub.exceptions import (
    CyclicTypeReferenceError,
    DuplicateUIDError,
    UnknownTier1Error,
    UnknownUIDError,
)
from uid_hub.grammar import GrammarTable
from uid_hub.parser import get_default_grammar, parse, try_parse
from uid_hub.types import UID, IssueKind, RegistryEntry, ValidationIssue

if TYPE_CHECKING:
    from uid_hub.config import UIDHubConfig

log = structlog.get_logger(__name__)

UIDLike = Union[UID, str]


class Registry:
    """UID 的唯一真理源：注册、解析、反向查找与交叉引用校验。"""

    def __init__(
        self, grammar: GrammarTable | None = None, *, allow_overwrite: bool = False
    ) -> None:
        """
        初始化注册表。

        Args:
            grammar: 用于解析字符串形式 UID 以及校验 `tier1` 的语法表，
                默认为进程级默认语法表。
            allow_overwrite: `register` 未显式指定 `overwrite` 时的默认行为。
        """
        self.grammar = grammar or get_default_grammar()
        self.allow_overwrite = allow_overwrite
        self._write_lock = threading.Lock()
        self._entries: Mapping[str, RegistryEntry] = MappingProxyType({})

    def _coerce(self, uid: UIDLike) -> UID:
        if isinstance(uid, UID):
            return uid
        return parse(uid, self.grammar)

    def _snapshot(self) -> Mapping[str, RegistryEntry]:
        return self._entries

    # ------------------------------------------------------------------
    # 写操作
    # ------------------------------------------------------------------

    def register(
        self, uid: UIDLike, resource: Any, *, overwrite: bool | None = None
    ) -> RegistryEntry:
        """
        注册一个 UID 并关联资源。

        Args:
            uid: 要注册的 UID（或其字符串形式）。
            resource: 不透明的资源描述符，原样保存并返回。
            overwrite: 已存在时是否替换；None 表示使用注册表默认值。

        Returns:
            新建或替换后的 `RegistryEntry`。替换时版本号加一。

        Raises:
            UnknownTier1Error: `tier1` 不是语法表中已知的类别。
            DuplicateUIDError: UID 已存在且未允许覆盖。
        """
        uid = self._coerce(uid)
        if not self.grammar.is_known_tier1(uid.tier1):
            raise UnknownTier1Error(
                f"Unknown tier1 category {uid.tier1!r} for {uid.key!r}",
                uid.canonical,
                2,
            )
        if overwrite is None:
            overwrite = self.allow_overwrite

        with self._write_lock:
            current = self._entries
            previous = current.get(uid.key)
            if previous is not None and not overwrite:
                raise DuplicateUIDError(f"UID already registered: {uid.key!r}")
            entry = RegistryEntry(
                uid=uid,
                resource=resource,
                version=previous.version + 1 if previous is not None else 1,
            )
            updated = dict(current)
            updated[uid.key] = entry
            self._entries = MappingProxyType(updated)

        if previous is None:
            log.debug("UID 已注册。", uid=uid.key, version=entry.version)
        else:
            log.debug("UID 已更新。", uid=uid.key, version=entry.version)
        return entry

    def deregister(self, uid: UIDLike) -> RegistryEntry:
        """
        注销一个 UID，返回被移除的记录。

        不会级联删除依赖它的 UID；这些悬空引用会在 `validate_all` 中报告。

        Raises:
            UnknownUIDError: UID 未注册。
        """
        uid = self._coerce(uid)
        with self._write_lock:
            current = self._entries
            if uid.key not in current:
                raise UnknownUIDError(f"UID not registered: {uid.key!r}")
            updated = dict(current)
            removed = updated.pop(uid.key)
            self._entries = MappingProxyType(updated)

        dangling = [d.key for d in self._dependents_in(self._entries, uid.key)]
        if dangling:
            log.warning(
                "注销的 UID 仍被其他 UID 引用。", uid=uid.key, dependents=dangling
            )
        else:
            log.debug("UID 已注销。", uid=uid.key)
        return removed

    # ------------------------------------------------------------------
    # 读操作
    # ------------------------------------------------------------------

    def get_entry(self, uid: UIDLike) -> RegistryEntry:
        """
        返回 UID 当前的注册记录。

        Raises:
            UnknownUIDError: UID 未注册。
        """
        uid = self._coerce(uid)
        entry = self._snapshot().get(uid.key)
        if entry is None:
            raise UnknownUIDError(f"UID not registered: {uid.key!r}")
        return entry

    def resolve(self, uid: UIDLike) -> Any:
        """返回 UID 关联的资源描述符。未注册时抛出 `UnknownUIDError`。"""
        return self.get_entry(uid).resource

    def resolve_type_ref(self, uid: UIDLike) -> UID:
        """
        沿 `type_ref` 链一直解析到没有类型引用的 UID 并返回它。

        起点优先使用注册表中登记的声明；每一步都按 `UID.key` 在注册表中查找目标。

        Raises:
            UnknownUIDError: 链上的某个目标未注册。
            CyclicTypeReferenceError: 链上出现重复的 UID。
        """
        return self._walk_type_refs(self._coerce(uid), self._snapshot())

    @staticmethod
    def _walk_type_refs(uid: UID, entries: Mapping[str, RegistryEntry]) -> UID:
        declared = entries.get(uid.key)
        current = declared.uid if declared is not None else uid
        chain = [current.key]
        visited = {current.key}
        while current.type_ref is not None:
            target_key = current.type_ref.key
            if target_key in visited:
                raise CyclicTypeReferenceError(
                    f"Cyclic type reference: {' -> '.join(chain + [target_key])}",
                    chain=chain,
                )
            entry = entries.get(target_key)
            if entry is None:
                raise UnknownUIDError(
                    f"Type reference {target_key!r} from {current.key!r} "
                    "is not registered"
                )
            current = entry.uid
            chain.append(target_key)
            visited.add(target_key)
        return current

    def find_by_resource(self, resource: Any) -> list[UID]:
        """反向查找：返回所有资源与给定资源相等的 UID。"""
        return [
            entry.uid
            for entry in self._snapshot().values()
            if entry.resource == resource
        ]

    @staticmethod
    def _dependents_in(entries: Mapping[str, RegistryEntry], key: str) -> list[UID]:
        return [
            entry.uid
            for entry in entries.values()
            if entry.uid.type_ref is not None and entry.uid.type_ref.key == key
        ]

    def dependents(self, uid: UIDLike) -> list[UID]:
        """返回 `type_ref` 直接指向给定 UID 的所有已注册 UID。"""
        return self._dependents_in(self._snapshot(), self._coerce(uid).key)

    def validate_all(self) -> Iterator[ValidationIssue]:
        """
        扫描整个注册表，逐条产出交叉引用问题。

        快照在调用时立即获取，之后的注册与注销不会影响返回的迭代器；
        问题本身则在迭代时惰性地计算。每个问题只报告一次：

        * `UNRESOLVED_TYPE_REF` 只报告给 `type_ref` 直接指向未注册 UID 的条目，
          沿链通向它的上游条目不会重复报告；
        * `CYCLIC_TYPE_REF` 每个环只报告一次，`uid` 为扫描时最先遇到的环成员，
          `chain` 为环上的全部成员。

        从不抛出异常。
        """
        return self._scan(self._snapshot())

    @classmethod
    def _scan(
        cls, entries: Mapping[str, RegistryEntry]
    ) -> Iterator[ValidationIssue]:
        reported_cycles: set[frozenset[str]] = set()
        for key, entry in entries.items():
            type_ref = entry.uid.type_ref
            if type_ref is None:
                continue
            if type_ref.key not in entries:
                yield ValidationIssue(
                    kind=IssueKind.UNRESOLVED_TYPE_REF,
                    uid=key,
                    message=(
                        f"Type reference {type_ref.key!r} from {key!r} "
                        "is not registered"
                    ),
                    chain=[key, type_ref.key],
                )
                continue
            cycle = cls._cycle_from(key, entries)
            if not cycle or frozenset(cycle) in reported_cycles:
                continue
            reported_cycles.add(frozenset(cycle))
            yield ValidationIssue(
                kind=IssueKind.CYCLIC_TYPE_REF,
                uid=cycle[0],
                message=f"Cyclic type reference: {' -> '.join(cycle + [cycle[0]])}",
                chain=cycle,
            )

    @staticmethod
    def _cycle_from(start: str, entries: Mapping[str, RegistryEntry]) -> list[str]:
        """沿已注册的 `type_ref` 前进，返回遇到的环的成员；链无环时返回空列表。"""
        path: list[str] = []
        positions: dict[str, int] = {}
        key: str | None = start
        while key is not None and key in entries:
            if key in positions:
                return path[positions[key] :]
            positions[key] = len(path)
            path.append(key)
            type_ref = entries[key].uid.type_ref
            key = type_ref.key if type_ref is not None else None
        return []

    def entries(self) -> tuple[RegistryEntry, ...]:
        """返回当前所有注册记录的快照。"""
        return tuple(self._snapshot().values())

    def __len__(self) -> int:
        return len(self._snapshot())

    def __contains__(self, uid: object) -> bool:
        if isinstance(uid, str):
            uid = try_parse(uid, self.grammar)
        if not isinstance(uid, UID):
            return False
        return uid.key in self._snapshot()

    def __iter__(self) -> Iterator[UID]:
        return iter([entry.uid for entry in self._snapshot().values()])

    def __repr__(self) -> str:
        return (
            f"Registry(entries={len(self)}, "
            f"allow_overwrite={self.allow_overwrite!r})"
        )


def create_registry(config: "UIDHubConfig") -> Registry:
    """根据配置创建一个注册表实例，语法表包含配置中的额外 `tier1` 类别。"""
    grammar = GrammarTable.from_config(config.grammar)
    return Registry(grammar, allow_overwrite=config.registry.allow_overwrite)
