# uid_hub/config.py

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uid_hub.grammar import check_text_segment


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console"] = "console"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"无效的日志级别: {v}")
        return level


class GrammarConfig(BaseModel):
    extra_tier1: list[str] = Field(
        default_factory=list, description="在内置类别之外额外登记的 tier1 类别"
    )
    strict_tier1: bool = Field(
        default=True, description="为 False 时解析器与注册表接受任意 tier1"
    )

    @field_validator("extra_tier1")
    @classmethod
    def validate_extra_tier1(cls, v: list[str]) -> list[str]:
        for value in v:
            check_text_segment(value, raw=value)
        return v


class RegistryConfig(BaseModel):
    allow_overwrite: bool = False


class UIDHubConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="UID_HUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    parse_cache_size: int = Field(default=1024, gt=0)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    grammar: GrammarConfig = Field(default_factory=GrammarConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
