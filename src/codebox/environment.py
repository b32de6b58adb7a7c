from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from codebox.errors import LauncherError


INSTALL_DIR_ENV = "CODEBOX_HOME"
DOCKERFILE_RELATIVE_PATH = "docker/Dockerfile"


def _repo_root() -> Path:
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


def capture_process_environ() -> Mapping[str, str]:
    return MappingProxyType(dict(os.environ))


def resolve_install_dir(environ: Mapping[str, str]) -> Path:
    override = str(environ.get(INSTALL_DIR_ENV, "")).strip()
    candidate = Path(override).expanduser().resolve() if override else _repo_root()
    if not candidate.is_dir():
        raise LauncherError(f"Failed to resolve codebox installation directory: {candidate}")
    if not (candidate / DOCKERFILE_RELATIVE_PATH).is_file():
        hint = f" (check {INSTALL_DIR_ENV})" if override else ""
        raise LauncherError(
            f"Failed to resolve codebox installation directory: {candidate / DOCKERFILE_RELATIVE_PATH} not found{hint}"
        )
    return candidate


@dataclass(frozen=True)
class Environment:
    """Process state captured once per invocation.

    Nothing downstream reads the working directory, home directory, hostname or
    process environment directly; it all flows through this snapshot.
    """

    cwd: Path
    home: Path
    hostname: str
    uid: int
    gid: int
    install_dir: Path
    environ: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def settings_file(self) -> Path:
        return self.install_dir / ".env"

    @property
    def settings_template(self) -> Path:
        return self.install_dir / ".env.example"

    @property
    def dockerfile(self) -> Path:
        return self.install_dir / DOCKERFILE_RELATIVE_PATH


def _caller_cwd(environ: Mapping[str, str]) -> Path:
    # $PWD keeps the caller's spelling of the path (symlinks unresolved), which is
    # what the home containment check compares against.
    cwd_raw = str(environ.get("PWD", ""))
    if cwd_raw and os.path.isabs(cwd_raw):
        try:
            if os.path.samefile(cwd_raw, os.curdir):
                return Path(cwd_raw)
        except OSError:
            pass
    return Path.cwd()


def capture_environment(install_dir: Path, environ: Mapping[str, str]) -> Environment:
    return Environment(
        cwd=_caller_cwd(environ),
        home=Path.home(),
        hostname=socket.gethostname(),
        uid=os.getuid(),
        gid=os.getgid(),
        install_dir=install_dir,
        environ=MappingProxyType(dict(environ)),
    )
