from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


DEFAULT_IMAGE_TAG = "opencode-dev:latest"

UID_LABEL = "codebox.uid"
GID_LABEL = "codebox.gid"
ROOT_NAME_LABEL = "codebox.name"

REASON_NO_IMAGE = "no image found"
REASON_UPDATE = "update requested"


@dataclass(frozen=True)
class ImageMetadata:
    """Build parameters recorded on an existing image. Missing values are None."""

    uid: str | None = None
    gid: str | None = None
    root_name: str | None = None


@dataclass(frozen=True)
class RebuildDecision:
    needed: bool
    reason: str = ""
    pull: bool = False
    no_cache: bool = False


def decide_rebuild(
    metadata: ImageMetadata | None,
    *,
    uid: int,
    root_name: str,
    update_requested: bool = False,
) -> RebuildDecision:
    if update_requested:
        return RebuildDecision(needed=True, reason=REASON_UPDATE, pull=True, no_cache=True)
    if metadata is None:
        return RebuildDecision(needed=True, reason=REASON_NO_IMAGE)

    reasons: list[str] = []
    if not metadata.uid or metadata.uid != str(uid):
        reasons.append(f"UID/GID mismatch (image: {metadata.uid or 'none'}, current: {uid})")
    if metadata.root_name and metadata.root_name != root_name:
        reasons.append(f"CODEBOX_NAME changed (image: {metadata.root_name}, current: {root_name})")
    if reasons:
        return RebuildDecision(needed=True, reason="; ".join(reasons))
    return RebuildDecision(needed=False)


@dataclass(frozen=True)
class BuildParams:
    tag: str
    dockerfile: Path
    context: Path
    uid: int
    gid: int
    username: str
    root_name: str
    tool_version: str
    docker_packages: str = ""
    pull: bool = False
    no_cache: bool = False

    def build_args(self) -> dict[str, str]:
        return {
            "UID": str(self.uid),
            "GID": str(self.gid),
            "OPENCODE_VERSION": self.tool_version,
            "USERNAME": self.username,
            "CODEBOX_NAME": self.root_name,
            "DOCKER_PACKAGES": self.docker_packages,
        }

    def docker_build_args(self) -> list[str]:
        args = ["build"]
        if self.pull:
            args.append("--pull")
        if self.no_cache:
            args.append("--no-cache")
        args.extend(["-f", str(self.dockerfile)])
        for key, value in self.build_args().items():
            args.extend(["--build-arg", f"{key}={value}"])
        args.extend(["-t", self.tag, str(self.context)])
        return args
