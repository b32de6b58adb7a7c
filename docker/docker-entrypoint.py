#!/usr/bin/env python3

from __future__ import annotations

import os
import sys


TOOL_COMMAND = "opencode"
SHELL_COMMANDS = {"bash", "/bin/bash"}


def _resolve_command(argv: list[str]) -> list[str]:
    if argv and argv[0] in SHELL_COMMANDS:
        return list(argv)
    return [TOOL_COMMAND, *argv]


def _print_loading_banner() -> None:
    rule = "-" * 63
    print(rule)
    print("Initializing OpenCode, please wait...")
    print(rule)
    print("", flush=True)


def main(argv: list[str]) -> None:
    command = _resolve_command(argv)
    if command[0] == TOOL_COMMAND:
        _print_loading_banner()
    os.execvp(command[0], command)


if __name__ == "__main__":
    main(sys.argv[1:])
