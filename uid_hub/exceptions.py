# uid_hub/exceptions.py
"""
本模块定义了 uid-hub 项目中所有自定义的、语义化的异常类型。

异常分为两大类：语法错误 (`UIDSyntaxError`) 由解析器抛出，
注册表错误 (`RegistryError`) 由注册表抛出。两者都是可恢复的本地错误。
"""

from __future__ import annotations


class UIDHubError(Exception):
    """
    所有 uid-hub 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    pass


class ConfigurationError(UIDHubError):
    """表示在加载、解析或验证配置（包括清单文件）时发生的错误。"""

    pass


class UIDSyntaxError(UIDHubError, ValueError):
    """
    UID 文本无法被解析时抛出的错误基类。

    Attributes:
        raw: 出错的原始 UID 文本。
        position: 出错段的下标（从 0 开始），未知时为 None。
    """

    def __init__(self, message: str, raw: str = "", position: int | None = None):
        self.raw = raw
        self.position = position
        super().__init__(message)


class MalformedUIDError(UIDSyntaxError):
    """UID 结构不合法：段数不足、括号不配对或段内容非法。"""

    pass


class UnknownTier1Error(MalformedUIDError):
    """`tier1` 段不是语法表中已登记的类别。"""

    pass


class MissingOwnerPrefixError(UIDSyntaxError):
    """首段（owner）缺少 `@` 前缀。"""

    pass


class EmptySegmentError(UIDSyntaxError):
    """UID 中存在空段，例如连续的分隔符或结尾的分隔符。"""

    pass


class RegistryError(UIDHubError):
    """注册表操作失败时抛出的错误基类。失败的操作不会改变注册表状态。"""

    pass


class DuplicateUIDError(RegistryError):
    """在未允许覆盖的情况下重复注册同一个 UID。"""

    pass


class UnknownUIDError(RegistryError, KeyError):
    """
    表示访问了一个未注册的 UID。
    继承自 KeyError 是为了保持与字典查找行为的一致性。
    """

    def __str__(self) -> str:
        # KeyError 默认会给消息加引号，这里保持原样输出
        return str(self.args[0]) if self.args else ""


class CyclicTypeReferenceError(RegistryError):
    """
    沿 `type_ref` 链解析时再次遇到了已访问过的 UID。

    Attributes:
        chain: 检测到循环之前依次访问过的 UID 键。
    """

    def __init__(self, message: str, chain: list[str] | None = None):
        self.chain = list(chain or [])
        super().__init__(message)
