# uid_hub/cli/main.py
"""uid-hub CLI 的主入口点。"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import uid_hub
from uid_hub.cli.state import State
from uid_hub.config import UIDHubConfig
from uid_hub.exceptions import ConfigurationError, RegistryError, UIDSyntaxError
from uid_hub.logging_config import setup_logging
from uid_hub.manifest import load_manifest
from uid_hub.parser import parse, set_parse_cache_size
from uid_hub.registry import Registry
from uid_hub.types import UID

app = typer.Typer(
    name="uid-hub",
    help="🔖 uid-hub: 统一标识符 (UID) 的解析、校验与注册表工具。",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(emoji=False)


def version_callback(value: bool) -> None:
    """处理 --version 选项的回调函数。"""
    if value:
        console.print(f"uid-hub [bold cyan]v{uid_hub.__version__}[/bold cyan]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="显示版本信息并退出。",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """主回调函数，在任何子命令执行前加载配置并初始化日志。"""
    try:
        config = UIDHubConfig()
        setup_logging(log_level=config.logging.level, log_format=config.logging.format)
        set_parse_cache_size(config.parse_cache_size)
        ctx.obj = State(config=config)
    except Exception as e:
        console.print("[bold red]❌ 启动失败：无法加载配置或初始化日志。[/bold red]")
        console.print(f"[dim]{escape(str(e))}[/dim]")
        raise typer.Exit(code=1) from e


def _uid_table(uid: UID, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("字段", style="cyan")
    table.add_column("值", style="magenta")
    table.add_row("owner", escape(uid.owner))
    table.add_row("module", escape(uid.module))
    table.add_row("tier1", escape(uid.tier1))
    table.add_row("name", escape(uid.name))
    table.add_row("tier2", escape(", ".join(uid.tier2)) or "-")
    table.add_row("doc_ref", str(uid.doc_ref).lower())
    table.add_row("type_ref", escape(uid.type_ref.canonical) if uid.type_ref else "-")
    table.add_row("canonical", escape(uid.canonical))
    return table


def _load(state: State, manifest: Path) -> Registry:
    registry = Registry(
        state.grammar, allow_overwrite=state.config.registry.allow_overwrite
    )
    try:
        return load_manifest(manifest, registry)
    except ConfigurationError as e:
        console.print(f"[bold red]❌ 清单加载失败：[/bold red]{escape(str(e))}")
        raise typer.Exit(code=1) from e


@app.command("parse")
def parse_command(
    ctx: typer.Context,
    raw: Annotated[str, typer.Argument(help="要解析的 UID 文本。")],
) -> None:
    """解析一个 UID 并以表格形式显示其结构。"""
    state: State = ctx.obj
    try:
        uid = parse(raw, state.grammar)
    except UIDSyntaxError as e:
        console.print(f"[bold red]❌ {type(e).__name__}:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    console.print(_uid_table(uid, "UID 结构"))


@app.command("tier1")
def tier1_command(ctx: typer.Context) -> None:
    """列出所有已知的 tier1 类别。"""
    state: State = ctx.obj
    for value in state.grammar.known_tier1:
        console.print(value)


@app.command("check")
def check_command(
    ctx: typer.Context,
    manifest: Annotated[Path, typer.Argument(help="注册表清单 (JSON) 路径。")],
) -> None:
    """加载清单并报告所有交叉引用问题。存在问题时以退出码 1 结束。"""
    registry = _load(ctx.obj, manifest)
    issues = list(registry.validate_all())
    if not issues:
        console.print(
            f"[bold green]✅ 共 {len(registry)} 个 UID，未发现问题。[/bold green]"
        )
        return

    table = Table(title="校验问题", show_header=True, header_style="bold cyan")
    table.add_column("类型", style="yellow", no_wrap=True)
    table.add_column("UID", style="cyan")
    table.add_column("说明")
    for issue in issues:
        table.add_row(issue.kind.value, escape(issue.uid), escape(issue.message))
    console.print(table)
    raise typer.Exit(code=1)


@app.command("resolve")
def resolve_command(
    ctx: typer.Context,
    manifest: Annotated[Path, typer.Argument(help="注册表清单 (JSON) 路径。")],
    raw: Annotated[str, typer.Argument(help="要解析的 UID 文本。")],
) -> None:
    """在清单构建的注册表中解析一个 UID 的资源及其最终类型。"""
    registry = _load(ctx.obj, manifest)
    try:
        entry = registry.get_entry(raw)
        resolved = registry.resolve_type_ref(raw)
    except (UIDSyntaxError, RegistryError) as e:
        console.print(f"[bold red]❌ {type(e).__name__}:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    console.print(_uid_table(entry.uid, f"UID (version {entry.version})"))
    console.print(f"resource: {entry.resource!r}", markup=False, highlight=False)
    console.print(f"resolved type: {resolved.canonical}", markup=False, highlight=False)
