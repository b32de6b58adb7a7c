from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from codebox.arguments import LauncherArgs, LaunchMode
from codebox.environment import Environment
from codebox.images import DEFAULT_IMAGE_TAG, BuildParams, RebuildDecision, decide_rebuild
from codebox.runtime import ContainerRuntime
from codebox.settings import Settings


LOGGER = logging.getLogger("codebox.plan")

TOOL_NAME = "opencode"


@dataclass(frozen=True)
class Mount:
    host_path: Path
    container_path: PurePosixPath
    create_host_dir: bool = False

    def volume_spec(self) -> str:
        return f"{self.host_path}:{self.container_path}"


@dataclass(frozen=True)
class LaunchPlan:
    workspace_dir: Path
    container_root_name: str
    hostname: str
    workspace_name: str
    container_workdir: PurePosixPath
    uid: int
    gid: int
    username: str
    mode: LaunchMode
    force: bool
    oauth_enabled: bool
    protected_dirs: frozenset[Path]
    mounts: tuple[Mount, ...]
    rebuild: RebuildDecision
    build_params: BuildParams
    passthrough_args: tuple[str, ...]
    settings_file: Path
    show_mounts: bool = True
    image_tag: str = DEFAULT_IMAGE_TAG

    @property
    def container_home(self) -> PurePosixPath:
        return container_home(self.username)


def container_home(username: str) -> PurePosixPath:
    return PurePosixPath("/home") / username


def container_workdir(root_name: str, hostname: str, workspace_dir: Path | str) -> PurePosixPath:
    # Only the last path component names the workspace; two checkouts sharing a
    # base name on the same host map to the same container path.
    return PurePosixPath("/") / root_name / hostname / Path(workspace_dir).name


def assemble_mounts(
    *,
    workspace_dir: Path,
    workdir: PurePosixPath,
    home: Path,
    username: str,
    host_config_dir: Path | None = None,
) -> tuple[Mount, ...]:
    tool_home = container_home(username)
    mounts = [Mount(workspace_dir, workdir)]
    if host_config_dir is not None:
        mounts.append(Mount(host_config_dir, tool_home / ".config" / TOOL_NAME))
    for kind in ("share", "state"):
        host_dir = home / ".local" / kind / TOOL_NAME
        mounts.append(Mount(host_dir, tool_home / ".local" / kind / TOOL_NAME, create_host_dir=True))
    return tuple(mounts)


def build_launch_plan(
    environment: Environment,
    args: LauncherArgs,
    settings: Settings,
    runtime: ContainerRuntime,
    *,
    image_tag: str = DEFAULT_IMAGE_TAG,
) -> LaunchPlan:
    """Resolve the full container invocation for one launch.

    The runtime is only asked to inspect the existing image; building and running
    are left to the caller once the plan is complete.
    """
    workspace_dir = environment.cwd
    workdir = container_workdir(settings.root_name, environment.hostname, workspace_dir)

    metadata = runtime.inspect_latest_image(image_tag)
    rebuild = decide_rebuild(
        metadata,
        uid=environment.uid,
        root_name=settings.root_name,
        update_requested=args.update,
    )
    LOGGER.debug("Image %s metadata=%s rebuild=%s", image_tag, metadata, rebuild)

    build_params = BuildParams(
        tag=image_tag,
        dockerfile=environment.dockerfile,
        context=environment.install_dir,
        uid=environment.uid,
        gid=environment.gid,
        username=settings.username,
        root_name=settings.root_name,
        tool_version=settings.tool_version,
        docker_packages=settings.docker_packages,
        pull=rebuild.pull,
        no_cache=rebuild.no_cache,
    )

    return LaunchPlan(
        workspace_dir=workspace_dir,
        container_root_name=settings.root_name,
        hostname=environment.hostname,
        workspace_name=workspace_dir.name,
        container_workdir=workdir,
        uid=environment.uid,
        gid=environment.gid,
        username=settings.username,
        mode=args.mode,
        force=args.force,
        oauth_enabled=args.oauth,
        protected_dirs=frozenset((environment.home, *settings.extra_protected_dirs)),
        mounts=assemble_mounts(
            workspace_dir=workspace_dir,
            workdir=workdir,
            home=environment.home,
            username=settings.username,
            host_config_dir=settings.host_config_dir,
        ),
        rebuild=rebuild,
        build_params=build_params,
        passthrough_args=args.passthrough,
        settings_file=environment.settings_file,
        show_mounts=settings.show_mounts,
        image_tag=image_tag,
    )
