"""Runtime settings: environment variables, optionally overridden by flags."""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from promptline.probes import STATUS_VAR
from promptline.style import ColorSpec, Shell, hex_color

logger = logging.getLogger(__name__)

DEFAULT_REF_COLOR = "#d8d0c8"  # warm white


@dataclass(frozen=True)
class PromptConfig:
    """Everything a single prompt draw needs to know up front."""
    env: Mapping[str, str]
    cwd: Path
    shell: Shell = Shell.RAW
    ref_color: ColorSpec = hex_color(DEFAULT_REF_COLOR)
    debug: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptline",
        description="Render a colorized shell prompt line",
    )
    parser.add_argument(
        "--shell",
        help="escape codes for this consumer: raw, bash, zsh, readline "
        "(default: $PROMPT_SHELL or raw)",
    )
    parser.add_argument("--status", help=f"exit status of the last command (default: ${STATUS_VAR})")
    parser.add_argument("--ref-color", help="hex color of the git segment (default: $PROMPT_REF_COLOR)")
    parser.add_argument("--debug", action="store_true", help="report failed segments on stderr")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )


def load_config(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> PromptConfig:
    """Merge flags over the environment.

    An unknown --shell is a usage error. An unknown $PROMPT_SHELL falls back
    to raw output, since the prompt is drawn on every command.
    """
    env = dict(os.environ if environ is None else environ)
    parser = build_parser()
    args = parser.parse_args(argv)

    debug = args.debug or env.get("DEBUG_PROMPT") == "1"
    configure_logging(debug)

    if args.shell:
        try:
            shell = Shell.parse(args.shell)
        except ValueError as e:
            parser.error(str(e))
    else:
        shell_name = env.get("PROMPT_SHELL") or Shell.RAW.value
        try:
            shell = Shell.parse(shell_name)
        except ValueError as e:
            logger.debug("Ignoring $PROMPT_SHELL: %s", e)
            shell = Shell.RAW

    if args.status is not None:
        env[STATUS_VAR] = args.status

    ref_color = hex_color(args.ref_color or env.get("PROMPT_REF_COLOR") or DEFAULT_REF_COLOR)

    # $PWD is what the user sees; "." is resolved later by the git probe
    cwd = Path(env.get("PWD") or ".")

    return PromptConfig(
        env=env,
        cwd=cwd,
        shell=shell,
        ref_color=ref_color,
        debug=debug,
    )
