from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

import click


NAME_OPTION = ("-n", "--name")
UPDATE_OPTION = ("-u", "--update")
BASH_OPTION = ("-b", "--bash")
OAUTH_OPTION = ("-o", "--oauth")
FORCE_OPTION = ("-f", "--force")
HELP_OPTION = ("-h", "--help")
END_OF_OPTIONS = "--"

USAGE_LINES = (
    "Usage: codebox [options] [opencode-arguments]",
    "Options:",
    "  -n, --name NAME    Use NAME as the container root directory (temporary override)",
    "  -u, --update       Rebuild docker and update OpenCode before starting container",
    "  -b, --bash         Open an interactive bash session instead of running OpenCode",
    "  -o, --oauth        Enable OAuth callback port (127.0.0.1:1455) for OpenAI sign-in",
    "  -f, --force        Continue even in protected directories",
    "  -h, --help         Show this help and OpenCode help",
)


class LaunchMode(enum.Enum):
    RUN = "run"
    BASH = "bash"
    HELP = "help"


@dataclass(frozen=True)
class LauncherArgs:
    name: str | None = None
    update: bool = False
    bash: bool = False
    oauth: bool = False
    force: bool = False
    help_requested: bool = False
    passthrough: tuple[str, ...] = ()

    @property
    def mode(self) -> LaunchMode:
        if self.bash:
            return LaunchMode.BASH
        if self.help_requested:
            return LaunchMode.HELP
        return LaunchMode.RUN


def _inline_option_value(token: str, option: tuple[str, str]) -> str | None:
    _short_option, long_option = option
    if token.startswith(f"{long_option}="):
        return token[len(long_option) + 1 :]
    return None


def parse_launcher_args(tokens: Iterable[str]) -> LauncherArgs:
    """Split raw command line tokens into launcher flags and wrapped tool arguments.

    Tokens the launcher does not recognize are kept byte-for-byte and in their
    original order. A literal `--` ends launcher option parsing; it and every
    token after it are forwarded untouched. The help flag is both recorded and
    forwarded in place so the wrapped tool prints its own help after the
    launcher's usage.
    """
    remaining = [str(token) for token in tokens]
    name: str | None = None
    update = bash = oauth = force = help_requested = False
    passthrough: list[str] = []

    index = 0
    while index < len(remaining):
        token = remaining[index]
        index += 1
        if token == END_OF_OPTIONS:
            passthrough.extend(remaining[index - 1 :])
            break
        if token in NAME_OPTION:
            if index >= len(remaining):
                raise click.UsageError(f"Option '{token}' requires an argument.")
            name = remaining[index]
            index += 1
            continue
        inline_name = _inline_option_value(token, NAME_OPTION)
        if inline_name is not None:
            name = inline_name
            continue
        if token in UPDATE_OPTION:
            update = True
        elif token in BASH_OPTION:
            bash = True
        elif token in OAUTH_OPTION:
            oauth = True
        elif token in FORCE_OPTION:
            force = True
        elif token in HELP_OPTION:
            help_requested = True
            passthrough.append(token)
        else:
            passthrough.append(token)

    return LauncherArgs(
        name=name,
        update=update,
        bash=bash,
        oauth=oauth,
        force=force,
        help_requested=help_requested,
        passthrough=tuple(passthrough),
    )
