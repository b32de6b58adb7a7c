from __future__ import annotations

import logging
import shutil
import sys
from typing import Any

import click

from codebox.arguments import USAGE_LINES, parse_launcher_args
from codebox.environment import capture_environment, capture_process_environ, resolve_install_dir
from codebox.invocation import describe_plan, describe_rebuild, docker_run_args
from codebox.plan import LaunchPlan, build_launch_plan
from codebox.runtime import ContainerRuntime, DockerRuntime
from codebox.safety import BANNER_RULE, check_workspace, enforce_safety_gate
from codebox.settings import (
    cli_settings,
    ensure_settings_file,
    environment_settings,
    load_settings_file,
    resolve_settings,
)


LOG_LEVEL_ENV = "CODEBOX_LOG_LEVEL"
LOG_LEVEL_CHOICES = ("critical", "error", "warning", "info", "debug")
DEFAULT_LOG_LEVEL = "warning"

LOGGER = logging.getLogger("codebox")
LOGGER.addHandler(logging.NullHandler())


def _normalize_log_level(value: Any) -> str:
    normalized = str(value or "").strip().lower()
    if normalized in LOG_LEVEL_CHOICES:
        return normalized
    return DEFAULT_LOG_LEVEL


def _configure_logging(level: str) -> None:
    normalized = _normalize_log_level(level)
    handler = logging.StreamHandler(sys.__stderr__)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    LOGGER.handlers.clear()
    LOGGER.addHandler(handler)
    LOGGER.setLevel(getattr(logging, normalized.upper(), logging.WARNING))
    LOGGER.propagate = False


def _echo_banner(lines: list[str]) -> None:
    click.echo(BANNER_RULE)
    for line in lines:
        click.echo(line)
    click.echo(BANNER_RULE)


def _print_usage() -> None:
    _echo_banner(["codebox - OpenCode Docker Launcher", BANNER_RULE, *USAGE_LINES])


def _ensure_host_mount_dirs(plan: LaunchPlan) -> None:
    # Docker would create missing bind sources as root-owned directories.
    for mount in plan.mounts:
        if not mount.create_host_dir:
            continue
        try:
            mount.host_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning("Unable to create %s: %s", mount.host_path, exc)


def _container_runtime() -> ContainerRuntime:
    return DockerRuntime()


RAW_TOKENS_META_KEY = "codebox.raw_tokens"


class RawTokenCommand(click.Command):
    """Keeps the command line exactly as typed; click's parser drops a literal `--`."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        ctx.meta[RAW_TOKENS_META_KEY] = list(args)
        return super().parse_args(ctx, args)


def _exit_status(returncode: int) -> int:
    # Killed by a signal: report it the way a shell would.
    if returncode < 0:
        return 128 - returncode
    return returncode


@click.command(
    cls=RawTokenCommand,
    help="Run OpenCode in a container with the current directory mounted as its workspace.",
    context_settings={"ignore_unknown_options": True, "help_option_names": []},
)
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def main(ctx: click.Context, tokens: tuple[str, ...]) -> None:
    environ = capture_process_environ()
    _configure_logging(environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL))
    args = parse_launcher_args(ctx.meta.get(RAW_TOKENS_META_KEY, tokens))
    install_dir = resolve_install_dir(environ)
    LOGGER.debug("Install dir=%s mode=%s passthrough=%s", install_dir, args.mode.value, list(args.passthrough))

    if args.help_requested:
        _print_usage()

    environment = capture_environment(install_dir, environ)
    settings_file = ensure_settings_file(environment.settings_file, environment.settings_template)
    settings = resolve_settings(
        [
            load_settings_file(settings_file),
            environment_settings(environment.environ),
            cli_settings(name=args.name),
        ]
    )

    verdict = check_workspace(environment.cwd, environment.home, settings.extra_protected_dirs)
    enforce_safety_gate(verdict, force=args.force)

    if shutil.which("docker") is None:
        raise click.ClickException("docker command not found in PATH")

    runtime = _container_runtime()
    plan = build_launch_plan(environment, args, settings, runtime)

    if plan.rebuild.needed:
        LOGGER.info("Rebuilding %s: %s", plan.image_tag, plan.rebuild.reason)
        _echo_banner(describe_rebuild(plan))
        runtime.build(plan.build_params)
        if plan.rebuild.pull:
            click.echo("")
            click.echo("Update complete!")
            click.echo("")

    _ensure_host_mount_dirs(plan)
    _echo_banner(describe_plan(plan))
    click.echo("")
    returncode = runtime.run(docker_run_args(plan))
    LOGGER.debug("Container exited with status %s", returncode)
    ctx.exit(_exit_status(returncode))


if __name__ == "__main__":
    main()
