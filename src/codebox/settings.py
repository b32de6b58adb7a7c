from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

import click
from dotenv import dotenv_values

from codebox.errors import LauncherError


LOGGER = logging.getLogger("codebox.settings")

DEFAULT_ROOT_NAME = "BOX"
DEFAULT_USERNAME = "dev"
DEFAULT_TOOL_VERSION = "latest"

ROOT_NAME_KEY = "CODEBOX_NAME"
ROOT_NAME_ENV_KEY = "CODEBOX_NAME_ENV"
PROTECTED_DIRS_KEY = "PROTECTED_DIRS"
USERNAME_KEY = "USERNAME"
DOCKER_PACKAGES_KEY = "DOCKER_PACKAGES"
TOOL_VERSION_KEY = "OPENCODE_VERSION"
HOST_CONFIG_DIR_KEY = "HOST_OPENCODE_CONFIG_DIR"
SHOW_MOUNTS_KEY = "SHOW_MOUNTS"

# Keys read from the process environment, mapped onto settings file keys. The
# root name uses its own variable so exporting it never collides with the
# CODEBOX_NAME the container itself receives.
ENVIRONMENT_KEYS = {
    ROOT_NAME_ENV_KEY: ROOT_NAME_KEY,
    PROTECTED_DIRS_KEY: PROTECTED_DIRS_KEY,
    USERNAME_KEY: USERNAME_KEY,
    DOCKER_PACKAGES_KEY: DOCKER_PACKAGES_KEY,
    TOOL_VERSION_KEY: TOOL_VERSION_KEY,
    HOST_CONFIG_DIR_KEY: HOST_CONFIG_DIR_KEY,
    SHOW_MOUNTS_KEY: SHOW_MOUNTS_KEY,
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    root_name: str = DEFAULT_ROOT_NAME
    extra_protected_dirs: tuple[Path, ...] = ()
    username: str = DEFAULT_USERNAME
    docker_packages: str = ""
    tool_version: str = DEFAULT_TOOL_VERSION
    host_config_dir: Path | None = None
    show_mounts: bool = True


def load_settings_file(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    # docker run --env-file passes ${VAR} through literally; read it the same way.
    values = dotenv_values(path, interpolate=False)
    out: dict[str, str] = {}
    for key, value in values.items():
        if key is None or value is None:
            continue
        out[str(key)] = str(value)
    return out


def ensure_settings_file(settings_file: Path, template_file: Path) -> Path:
    if settings_file.is_file():
        return settings_file
    if not template_file.is_file():
        raise LauncherError(
            f"Settings file not found at {settings_file} and no template at {template_file} to create it from."
        )
    LOGGER.warning("Settings file %s not found; creating it from %s", settings_file, template_file)
    try:
        shutil.copyfile(template_file, settings_file)
    except OSError as exc:
        raise LauncherError(f"Unable to create settings file {settings_file} from {template_file}: {exc}") from exc
    click.echo(f"Created {settings_file} from {template_file.name}.", err=True)
    click.echo(f"Edit it to add your API keys (if needed): vim {settings_file}", err=True)
    return settings_file


def environment_settings(environ: Mapping[str, str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for env_key, setting_key in ENVIRONMENT_KEYS.items():
        if env_key in environ:
            out[setting_key] = str(environ[env_key])
    return out


def cli_settings(*, name: str | None) -> dict[str, str]:
    if name is None:
        return {}
    return {ROOT_NAME_KEY: name}


def merge_sources(sources: Iterable[Mapping[str, str]]) -> dict[str, str]:
    """Fold setting sources from lowest to highest precedence; blank values never win."""
    merged: dict[str, str] = {}
    for source in sources:
        for key, value in source.items():
            candidate = str(value).strip()
            if candidate:
                merged[key] = candidate
    return merged


def _normalize_root_name(raw_value: str) -> str:
    candidate = raw_value.strip().strip("/")
    if not candidate or "/" in candidate or candidate in {".", ".."}:
        raise click.UsageError(
            f"Invalid container root name: {raw_value!r} (must be a single path component)."
        )
    return candidate


def _parse_bool(raw_value: str, *, key: str, default: bool) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    LOGGER.warning("Ignoring unrecognized %s value %r; using %s", key, raw_value, str(default).lower())
    return default


def _parse_protected_dirs(raw_value: str) -> tuple[Path, ...]:
    return tuple(Path(part.strip()) for part in raw_value.split(":") if part.strip())


def resolve_settings(sources: Iterable[Mapping[str, str]]) -> Settings:
    merged = merge_sources(sources)
    host_config_dir = merged.get(HOST_CONFIG_DIR_KEY)
    show_mounts = merged.get(SHOW_MOUNTS_KEY)
    return Settings(
        root_name=_normalize_root_name(merged.get(ROOT_NAME_KEY, DEFAULT_ROOT_NAME)),
        extra_protected_dirs=_parse_protected_dirs(merged.get(PROTECTED_DIRS_KEY, "")),
        username=merged.get(USERNAME_KEY, DEFAULT_USERNAME),
        docker_packages=merged.get(DOCKER_PACKAGES_KEY, ""),
        tool_version=merged.get(TOOL_VERSION_KEY, DEFAULT_TOOL_VERSION),
        host_config_dir=Path(host_config_dir) if host_config_dir else None,
        show_mounts=True if show_mounts is None else _parse_bool(show_mounts, key=SHOW_MOUNTS_KEY, default=True),
    )
