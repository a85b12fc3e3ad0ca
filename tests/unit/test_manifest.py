# tests/unit/test_manifest.py
"""针对 `uid_hub.manifest` 清单读写的单元测试。"""

import json
from pathlib import Path

import pytest

from tests.helpers.factories import make_resource
from uid_hub.exceptions import ConfigurationError
from uid_hub.grammar import default_grammar
from uid_hub.manifest import dump_manifest, load_manifest
from uid_hub.registry import Registry
from uid_hub.types import IssueKind, ResourceKind


def _write(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_manifest_registers_entries(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "uids.json",
        {
            "tier1": ["workflow"],
            "entries": [
                {
                    "uid": "@acme:billing:workflow:Nightly",
                    "resource": {"kind": "file", "location": "flows/nightly.py"},
                },
                {
                    "uid": (
                        "@acme:billing:function:charge:params[0]:"
                        "@acme:billing:definedtypes:Invoice"
                    ),
                    "resource": {"kind": "symbol", "location": "billing.charge"},
                },
            ],
        },
    )
    registry = load_manifest(path)
    assert len(registry) == 2
    resource = registry.resolve("@acme:billing:workflow:Nightly")
    assert resource.kind is ResourceKind.FILE
    issues = list(registry.validate_all())
    assert [i.kind for i in issues] == [IssueKind.UNRESOLVED_TYPE_REF]


def test_load_manifest_into_existing_registry(tmp_path: Path) -> None:
    registry = Registry(default_grammar())
    registry.register("@acme:billing:definedtypes:Invoice", make_resource("invoice.ts"))
    path = _write(
        tmp_path / "uids.json",
        {
            "entries": [
                {
                    "uid": (
                        "@acme:billing:function:charge:"
                        "@acme:billing:definedtypes:Invoice"
                    ),
                    "resource": {"location": "billing.charge"},
                }
            ]
        },
    )
    assert load_manifest(path, registry) is registry
    assert list(registry.validate_all()) == []


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"entries": [{"uid": "@a:b:class:C"}]}),
        json.dumps(
            {"entries": [{"uid": "a:b:class:C", "resource": {"location": "x"}}]}
        ),
        json.dumps(
            {
                "entries": [
                    {"uid": "@a:b:class:C", "resource": {"location": "x"}},
                    {"uid": "@a:b:class:C", "resource": {"location": "y"}},
                ]
            }
        ),
        json.dumps({"tier1": ["bad:tier"]}),
    ],
)
def test_load_manifest_rejects_invalid_content(tmp_path: Path, content: str) -> None:
    path = tmp_path / "broken.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_manifest(path)


def test_failed_load_leaves_registry_and_grammar_untouched(tmp_path: Path) -> None:
    """清单中任一条目失败时，目标注册表与语法表都不应被部分修改。"""
    registry = Registry(default_grammar())
    existing = make_resource("existing.py")
    registry.register("@a:b:class:Existing", existing)
    path = _write(
        tmp_path / "uids.json",
        {
            "tier1": ["workflow"],
            "entries": [
                {"uid": "@a:b:workflow:W", "resource": {"location": "w.py"}},
                {"uid": "@a:b:class:Existing", "resource": {"location": "dup.py"}},
            ],
        },
    )

    with pytest.raises(ConfigurationError, match="already registered"):
        load_manifest(path, registry)

    assert [uid.key for uid in registry] == ["@a:b:class:Existing"]
    assert registry.resolve("@a:b:class:Existing") is existing
    assert not registry.grammar.is_known_tier1("workflow")
    assert "workflow" not in registry.grammar.known_tier1


def test_load_manifest_overwrites_when_registry_allows(tmp_path: Path) -> None:
    registry = Registry(default_grammar(), allow_overwrite=True)
    registry.register("@a:b:class:Existing", make_resource("old.py"))
    path = _write(
        tmp_path / "uids.json",
        {
            "entries": [
                {"uid": "@a:b:class:Existing", "resource": {"location": "new.py"}}
            ]
        },
    )
    load_manifest(path, registry)
    entry = registry.get_entry("@a:b:class:Existing")
    assert entry.version == 2
    assert entry.resource.location == "new.py"


def test_load_manifest_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_manifest(tmp_path / "absent.json")


def test_dump_then_load_preserves_registry(tmp_path: Path) -> None:
    grammar = default_grammar()
    grammar.register_tier1("workflow")
    registry = Registry(grammar)
    registry.register(
        "@acme:billing:workflow:Nightly", make_resource("flows/nightly.py")
    )
    registry.register(
        "@acme:billing:class:Invoice:doc", make_resource("docs/invoice.md")
    )

    path = tmp_path / "out.json"
    dump_manifest(registry, path)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["tier1"] == ["workflow"]
    assert [e["uid"] for e in data["entries"]] == [
        "@acme:billing:class:Invoice:doc",
        "@acme:billing:workflow:Nightly",
    ]

    reloaded = load_manifest(path)
    assert {uid.key for uid in reloaded} == {uid.key for uid in registry}


def test_dump_manifest_rejects_opaque_resources(tmp_path: Path) -> None:
    registry = Registry(default_grammar())
    registry.register("@a:b:class:C", object())
    with pytest.raises(ConfigurationError):
        dump_manifest(registry, tmp_path / "out.json")
