from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from codebox.environment import Environment
from codebox.images import BuildParams, ImageMetadata
from codebox.runtime import ContainerRuntime


class FakeRuntime(ContainerRuntime):
    def __init__(self, metadata: ImageMetadata | None = None, run_status: int = 0) -> None:
        self.metadata = metadata
        self.run_status = run_status
        self.inspected: list[str] = []
        self.builds: list[BuildParams] = []
        self.runs: list[list[str]] = []

    def inspect_latest_image(self, tag: str) -> ImageMetadata | None:
        self.inspected.append(tag)
        return self.metadata

    def build(self, params: BuildParams) -> None:
        self.builds.append(params)

    def run(self, args: Sequence[str]) -> int:
        self.runs.append(list(args))
        return self.run_status


def make_install_dir(root: Path, settings: str | None = "CODEBOX_NAME=BOX\n", template: str | None = None) -> Path:
    install_dir = root / "codebox"
    (install_dir / "docker").mkdir(parents=True, exist_ok=True)
    (install_dir / "docker" / "Dockerfile").write_text("FROM ubuntu:24.04\n", encoding="utf-8")
    if settings is not None:
        (install_dir / ".env").write_text(settings, encoding="utf-8")
    if template is not None:
        (install_dir / ".env.example").write_text(template, encoding="utf-8")
    return install_dir


def make_environment(
    *,
    cwd: str = "/home/alice/proj",
    home: str = "/home/alice",
    hostname: str = "helix",
    uid: int = 1000,
    gid: int = 1000,
    install_dir: Path = Path("/home/alice/tools/codebox"),
    environ: dict[str, str] | None = None,
) -> Environment:
    return Environment(
        cwd=Path(cwd),
        home=Path(home),
        hostname=hostname,
        uid=uid,
        gid=gid,
        install_dir=install_dir,
        environ=dict(environ or {}),
    )
