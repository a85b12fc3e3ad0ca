# uid_hub/manifest.py
"""
注册表清单（JSON）的读写。

清单是注册表的外部持久化形式，核心注册表本身不做任何 I/O：

    {
      "tier1": ["workflow"],
      "entries": [
        {"uid": "@acme:billing:class:Invoice",
         "resource": {"kind": "file", "location": "billing/invoice.py"}}
      ]
    }
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

from uid_hub.exceptions import ConfigurationError, RegistryError, UIDSyntaxError
from uid_hub.grammar import DEFAULT_TIER1, GrammarTable, default_grammar
from uid_hub.parser import parse
from uid_hub.registry import Registry
from uid_hub.types import UID, ResourceDescriptor

log = structlog.get_logger(__name__)


class ManifestEntry(BaseModel):
    uid: str
    resource: ResourceDescriptor


class Manifest(BaseModel):
    tier1: list[str] = Field(default_factory=list)
    entries: list[ManifestEntry] = Field(default_factory=list)


def load_manifest(path: Path, registry: Registry | None = None) -> Registry:
    """
    读取清单文件并把其中的条目注册到注册表中。

    加载是全有或全无的：所有 `tier1` 类别与条目先在一张临时语法表上
    解析并检查重复，全部通过后才写入目标注册表及其语法表。
    失败时目标注册表与语法表保持原样。

    Args:
        path: 清单文件路径。
        registry: 目标注册表；为 None 时使用带全新语法表的空注册表。

    Returns:
        填充后的注册表。

    Raises:
        ConfigurationError: 文件无法读取、格式无效，或某个条目无法注册。
    """
    try:
        manifest = Manifest.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"无法读取清单文件 '{path}': {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"清单文件 '{path}' 格式无效: {e}") from e

    if registry is None:
        registry = Registry(default_grammar())
    staged = _stage(path, manifest, registry)

    registry.grammar.register_tier1(*manifest.tier1)
    for index, (uid, resource) in enumerate(staged):
        try:
            registry.register(uid, resource)
        except RegistryError as e:
            raise ConfigurationError(
                f"清单文件 '{path}' 的第 {index} 个条目无法注册: {e}"
            ) from e

    log.info("清单加载完成。", path=str(path), entries=len(staged))
    return registry


def _stage(
    path: Path, manifest: Manifest, registry: Registry
) -> list[tuple[UID, ResourceDescriptor]]:
    """在不修改注册表的前提下解析全部条目并检查重复。"""
    grammar = GrammarTable(registry.grammar.known_tier1, strict=registry.grammar.strict)
    try:
        grammar.register_tier1(*manifest.tier1)
    except UIDSyntaxError as e:
        raise ConfigurationError(f"清单文件 '{path}' 中的 tier1 类别无效: {e}") from e

    staged: list[tuple[UID, ResourceDescriptor]] = []
    seen: set[str] = set()
    for index, item in enumerate(manifest.entries):
        try:
            uid = parse(item.uid, grammar)
        except UIDSyntaxError as e:
            raise ConfigurationError(
                f"清单文件 '{path}' 的第 {index} 个条目无法注册: {e}"
            ) from e
        if not registry.allow_overwrite and (uid.key in seen or uid in registry):
            raise ConfigurationError(
                f"清单文件 '{path}' 的第 {index} 个条目无法注册: "
                f"UID already registered: {uid.key!r}"
            )
        seen.add(uid.key)
        staged.append((uid, item.resource))
    return staged


def dump_manifest(registry: Registry, path: Path) -> None:
    """
    把注册表写出为清单文件。

    Raises:
        ConfigurationError: 某个条目的资源不是 `ResourceDescriptor`（或可转换的字典）。
    """
    entries: list[ManifestEntry] = []
    for entry in sorted(registry.entries(), key=lambda e: e.uid.key):
        try:
            resource = ResourceDescriptor.model_validate(entry.resource)
        except ValidationError as e:
            raise ConfigurationError(
                f"UID '{entry.uid.key}' 的资源无法写入清单: {e}"
            ) from e
        entries.append(ManifestEntry(uid=entry.uid.canonical, resource=resource))

    extra_tier1 = [t for t in registry.grammar.known_tier1 if t not in DEFAULT_TIER1]
    manifest = Manifest(tier1=extra_tier1, entries=entries)
    Path(path).write_text(manifest.model_dump_json(indent=2), encoding="utf-8")
    log.info("清单已写出。", path=str(path), entries=len(entries))
