# uid_hub/logging_config.py
"""
本模块负责集中配置项目的日志系统。

console 格式使用 Rich 渲染：普通日志为单行，警告及以上级别渲染为带键值表格的面板；
json 格式使用 structlog 自带的 JSONRenderer，便于机器采集。
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

APP_LOGGER_NAME = "uid_hub"


class RichEventRenderer:
    """一个 structlog 处理器，把事件字典渲染为 Rich 格式的字符串。"""

    def __init__(
        self,
        kv_truncate_at: int = 120,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        console: Console | None = None,
    ):
        """
        初始化渲染器。

        Args:
            kv_truncate_at: 键值对中值的最大显示长度，超长则截断。
            show_timestamp: 是否显示时间戳。
            show_logger_name: 是否显示日志记录器名称。
            console: 用于捕获输出的 Console，默认新建一个。
        """
        self._console = console or Console(emoji=False)
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name

        self._level_styles = {
            "debug": ("blue", "DEBUG   "),
            "info": ("green", "INFO    "),
            "warning": ("yellow", "WARNING "),
            "error": ("bold red", "ERROR   "),
            "critical": ("bold magenta", "CRITICAL"),
        }
        self._panel_levels = {"warning", "error", "critical"}

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        timestamp = str(event_dict.pop("timestamp", ""))
        level = str(event_dict.pop("level", "info")).lower()
        logger_name = str(event_dict.pop("logger", APP_LOGGER_NAME))
        style, level_text = self._level_styles.get(level, ("default", level.upper()))

        if level in self._panel_levels:
            renderable = self._as_panel(
                level_text, style, logger_name, event, timestamp, event_dict
            )
        else:
            renderable = self._as_line(
                level_text, style, logger_name, event, timestamp, event_dict
            )

        with self._console.capture() as capture:
            self._console.print(renderable)
        return capture.get().rstrip()

    def _format_value(self, value: Any) -> str:
        text = repr(value)
        if len(text) > self._kv_truncate_at:
            text = text[: self._kv_truncate_at - 3] + "..."
        return text

    def _as_line(
        self,
        level_text: str,
        style: str,
        logger_name: str,
        event: str,
        timestamp: str,
        kv: MutableMapping[str, Any],
    ) -> Text:
        line = Text()
        if self._show_timestamp and timestamp:
            line.append(timestamp, style="dim")
            line.append(" ")
        line.append(level_text, style=style)
        line.append(" ")
        line.append(event)
        for key, value in sorted(kv.items()):
            line.append(f" {key}=", style="dim")
            line.append(self._format_value(value))
        if self._show_logger_name:
            line.append(f" ({logger_name})", style="cyan dim")
        return line

    def _as_panel(
        self,
        level_text: str,
        style: str,
        logger_name: str,
        event: str,
        timestamp: str,
        kv: MutableMapping[str, Any],
    ) -> Panel:
        title_parts = [f"[{style}]{level_text}[/]"]
        if self._show_logger_name:
            title_parts.append(f"[cyan dim]({logger_name})[/]")

        renderables: list[RenderableType] = [Text(event)]
        if kv:
            table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
            table.add_column(style="dim", justify="right")
            table.add_column(overflow="fold")
            for key, value in sorted(kv.items()):
                table.add_row(f"{key} :", Text(self._format_value(value)))
            renderables.append(table)

        subtitle: Text | None = None
        if self._show_timestamp and timestamp:
            subtitle = Text(timestamp, style="dim")
        return Panel(
            Group(*renderables),
            title=Text.from_markup(" ".join(title_parts)),
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style=style,
            expand=False,
        )


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    show_timestamp: bool = True,
    show_logger_name: bool = True,
) -> None:
    """
    配置全局的 structlog 日志系统。这是整个应用的日志配置入口。

    Args:
        log_level: uid_hub 记录器显示的最低日志级别。
        log_format: 'console' 用于开发环境的 Rich 输出，'json' 用于机器可读输出。
        show_timestamp: 是否在日志中包含时间戳。
        show_logger_name: 是否在日志中包含记录器名称。
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        processors.insert(3, structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"))
        processors.append(
            RichEventRenderer(
                show_timestamp=show_timestamp, show_logger_name=show_logger_name
            )
        )
    else:
        processors.insert(3, structlog.processors.TimeStamper(fmt="iso", utc=True))
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    # structlog 已经产出了最终字符串，这里原样输出
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())
    app_logger.propagate = True

    structlog.get_logger("uid_hub.logging_config").debug(
        "日志系统已配置完成。", log_format=log_format, app_log_level=log_level.upper()
    )
