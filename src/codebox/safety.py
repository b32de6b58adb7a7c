from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable

import click

from codebox.errors import SafetyGateError


LOGGER = logging.getLogger("codebox.safety")

REASON_PROTECTED = "protected directory"
REASON_OUTSIDE_HOME = "outside home"
BANNER_RULE = "-" * 63


@dataclass(frozen=True)
class SafetyVerdict:
    workspace: PurePosixPath
    reason: str | None = None
    path: PurePosixPath | None = None

    @property
    def passed(self) -> bool:
        return self.reason is None

    def describe(self) -> str:
        if self.reason == REASON_PROTECTED:
            return f"Running in protected directory: {self.path}"
        if self.reason == REASON_OUTSIDE_HOME:
            return f"Running outside your home directory: {self.workspace} is not under {self.path}"
        return f"Workspace {self.workspace} is safe to mount"


def _normalize(path: object) -> PurePosixPath:
    return PurePosixPath(posixpath.normpath(str(path)))


def is_strictly_within(path: PurePosixPath, root: PurePosixPath) -> bool:
    path_parts = path.parts
    root_parts = root.parts
    return len(path_parts) > len(root_parts) and path_parts[: len(root_parts)] == root_parts


def check_workspace(workspace: object, home: object, protected_dirs: Iterable[object] = ()) -> SafetyVerdict:
    """Decide whether a workspace directory may be mounted into the container.

    The home directory is always protected. A workspace fails when it equals any
    protected directory, or when it does not sit strictly below the home
    directory. Pure function of its inputs.
    """
    workspace_path = _normalize(workspace)
    home_path = _normalize(home)
    for protected in (home_path, *(_normalize(entry) for entry in protected_dirs)):
        if workspace_path == protected:
            return SafetyVerdict(workspace=workspace_path, reason=REASON_PROTECTED, path=protected)
    if not is_strictly_within(workspace_path, home_path):
        return SafetyVerdict(workspace=workspace_path, reason=REASON_OUTSIDE_HOME, path=home_path)
    return SafetyVerdict(workspace=workspace_path)


def enforce_safety_gate(verdict: SafetyVerdict, *, force: bool) -> None:
    if verdict.passed:
        LOGGER.debug("Safety gate passed for %s", verdict.workspace)
        return
    reason = verdict.describe()
    if not force:
        LOGGER.debug("Safety gate rejected %s (%s)", verdict.workspace, verdict.reason)
        raise SafetyGateError(
            f"{reason}\n    This can be dangerous. To continue anyway, rerun with:\n    codebox --force"
        )
    LOGGER.warning("Safety gate overridden with --force: %s", reason)
    click.echo(BANNER_RULE)
    click.echo("Running in 'force' mode, use caution.")
    click.echo(f"    Reason: {reason}")
    click.echo(BANNER_RULE)
    click.echo("")
