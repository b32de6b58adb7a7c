from __future__ import annotations

import abc
import json
import logging
import shlex
import subprocess
from typing import Any, Iterable, Sequence

from codebox.errors import RuntimeCommandError
from codebox.images import GID_LABEL, ROOT_NAME_LABEL, UID_LABEL, BuildParams, ImageMetadata


LOGGER = logging.getLogger("codebox.runtime")


class ContainerRuntime(abc.ABC):
    @abc.abstractmethod
    def inspect_latest_image(self, tag: str) -> ImageMetadata | None:
        """Returns the build parameters recorded on the image, or None if it cannot be inspected."""
        pass

    @abc.abstractmethod
    def build(self, params: BuildParams) -> None:
        """Builds the image; raises RuntimeCommandError when the build fails."""
        pass

    @abc.abstractmethod
    def run(self, args: Sequence[str]) -> int:
        """Runs a container in the foreground and returns its exit status."""
        pass


def _env_entries(entries: Iterable[Any]) -> dict[str, str]:
    values: dict[str, str] = {}
    for entry in entries:
        key, sep, value = str(entry).partition("=")
        if sep and key not in values:
            values[key] = value
    return values


def metadata_from_inspect(payload: Any) -> ImageMetadata | None:
    """Reads codebox build parameters out of `docker image inspect` JSON.

    Labels are authoritative; images built before labels were recorded still
    carry the values as ENV entries.
    """
    if isinstance(payload, list):
        if not payload:
            return None
        payload = payload[0]
    if not isinstance(payload, dict):
        return None
    config = payload.get("Config")
    if not isinstance(config, dict):
        config = {}
    labels = config.get("Labels")
    if not isinstance(labels, dict):
        labels = {}
    env_entries = config.get("Env")
    env = _env_entries(env_entries if isinstance(env_entries, list) else [])

    def pick(label: str, env_key: str) -> str | None:
        value = str(labels.get(label) or env.get(env_key) or "").strip()
        return value or None

    return ImageMetadata(
        uid=pick(UID_LABEL, "UID"),
        gid=pick(GID_LABEL, "GID"),
        root_name=pick(ROOT_NAME_LABEL, "CODEBOX_NAME"),
    )


class DockerRuntime(ContainerRuntime):
    def __init__(self, docker_command: str = "docker") -> None:
        self.docker_command = docker_command

    def inspect_latest_image(self, tag: str) -> ImageMetadata | None:
        result = subprocess.run(
            [self.docker_command, "image", "inspect", tag],
            check=False,
            text=True,
            capture_output=True,
        )
        if result.returncode != 0:
            LOGGER.debug("docker image inspect %s failed: %s", tag, result.stderr.strip())
            return None
        try:
            payload = json.loads(result.stdout or "null")
        except json.JSONDecodeError as exc:
            LOGGER.warning("Unable to decode docker image inspect output for %s: %s", tag, exc)
            return None
        return metadata_from_inspect(payload)

    def build(self, params: BuildParams) -> None:
        cmd = [self.docker_command, *params.docker_build_args()]
        LOGGER.debug("Running %s", shlex.join(cmd))
        result = subprocess.run(cmd, check=False)
        if result.returncode != 0:
            raise RuntimeCommandError(
                f"Command failed with exit code {result.returncode}: {shlex.join(cmd)}",
                result.returncode,
            )

    def run(self, args: Sequence[str]) -> int:
        cmd = [self.docker_command, "run", *args]
        LOGGER.debug("Running %s", shlex.join(cmd))
        return subprocess.run(cmd, check=False).returncode
