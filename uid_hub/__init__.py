# uid_hub/__init__.py
"""uid-hub: 统一标识符 (UID) 的解析器、校验器与解析注册表。

UID 的文本形式为 `@owner:module:tier1:name[:tier2...][:doc]`，
可以统一地寻址代码实体、文档节点与 API 端点。
"""

__version__ = "0.1.0"

from .config import UIDHubConfig
from .exceptions import (
    CyclicTypeReferenceError,
    DuplicateUIDError,
    EmptySegmentError,
    MalformedUIDError,
    MissingOwnerPrefixError,
    UIDHubError,
    UIDSyntaxError,
    UnknownTier1Error,
    UnknownUIDError,
)
from .grammar import GrammarTable, default_grammar
from .parser import parse, serialize, try_parse
from .registry import Registry, create_registry
from .types import UID, RegistryEntry, ResourceDescriptor, ValidationIssue

__all__ = [
    "__version__",
    "UID",
    "RegistryEntry",
    "ResourceDescriptor",
    "ValidationIssue",
    "GrammarTable",
    "default_grammar",
    "parse",
    "serialize",
    "try_parse",
    "Registry",
    "create_registry",
    "UIDHubConfig",
    "UIDHubError",
    "UIDSyntaxError",
    "MalformedUIDError",
    "UnknownTier1Error",
    "MissingOwnerPrefixError",
    "EmptySegmentError",
    "DuplicateUIDError",
    "UnknownUIDError",
    "CyclicTypeReferenceError",
]
