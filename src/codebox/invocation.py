from __future__ import annotations

from codebox.arguments import LaunchMode
from codebox.plan import LaunchPlan


OAUTH_HOST = "127.0.0.1"
OAUTH_PORT = 1455
BASH_ENTRYPOINT = "/bin/bash"


def oauth_callback_url() -> str:
    return f"http://{OAUTH_HOST}:{OAUTH_PORT}"


def docker_run_args(plan: LaunchPlan) -> list[str]:
    """Arguments for `docker run`, including the image tag and forwarded tool arguments."""
    args = [
        "--rm",
        "-it",
        "--cap-drop",
        "ALL",
        "--security-opt",
        "no-new-privileges",
        "--env-file",
        str(plan.settings_file),
        "-e",
        f"CODEBOX_NAME={plan.container_root_name}",
        "-e",
        f"BASH_ENV={plan.container_home / '.bashrc'}",
        "-w",
        str(plan.container_workdir),
    ]
    for mount in plan.mounts:
        args.extend(["-v", mount.volume_spec()])
    if plan.oauth_enabled:
        args.extend(["-p", f"{OAUTH_HOST}:{OAUTH_PORT}:{OAUTH_PORT}"])
    if plan.mode is LaunchMode.BASH:
        args.extend(["--entrypoint", BASH_ENTRYPOINT])
    args.append(plan.image_tag)
    args.extend(plan.passthrough_args)
    return args


def describe_rebuild(plan: LaunchPlan) -> list[str]:
    return [
        "Building OpenCode Docker Image",
        f"    Reason: {plan.rebuild.reason}",
        f"    UID={plan.uid}, GID={plan.gid}, CODEBOX_NAME={plan.container_root_name}",
    ]


def describe_plan(plan: LaunchPlan) -> list[str]:
    if plan.mode is LaunchMode.BASH:
        lines = [f"Starting bash session in: {plan.workspace_dir}"]
    else:
        lines = [f"Starting OpenCode in: {plan.workspace_dir}"]
    lines.extend(
        [
            f"   Container path: {plan.container_workdir}",
            f"   (UID={plan.uid}, GID={plan.gid}, CODEBOX_NAME={plan.container_root_name})",
            f"   Environment: {plan.settings_file}",
        ]
    )
    if plan.show_mounts:
        lines.append("   Volume mounts:")
        lines.extend(f"     - {mount.host_path} → {mount.container_path}" for mount in plan.mounts)
        if plan.oauth_enabled:
            lines.append(f"   OAuth callback: {oauth_callback_url()}")
    return lines
