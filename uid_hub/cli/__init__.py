# uid_hub/cli/__init__.py
"""uid-hub 命令行接口。"""

from uid_hub.cli.main import app

__all__ = ["app"]
