from __future__ import annotations

import click


class LauncherError(click.ClickException):
    """The launcher could not resolve its own environment."""


class SafetyGateError(LauncherError):
    pass


class RuntimeCommandError(click.ClickException):
    def __init__(self, message: str, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.exit_code = returncode if returncode > 0 else 1
