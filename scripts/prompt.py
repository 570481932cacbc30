#!/usr/bin/env python3
"""Shell prompt line.

Format: [user]-[host]-[~/proj]-[main abcd1..]-[nix: pure]-[zsh]-[0] ->
Every bracket is an independent probe; a probe that fails is left out.

Usage (bash):
    PS1='$(PROMPT_STATUS=$? PROMPT_SHELL=bash python3 scripts/prompt.py)'

Set DEBUG_PROMPT=1 (or pass --debug) to see why segments are missing.
"""

import sys
from pathlib import Path
from typing import Callable, Iterable

sys.path.insert(0, str(Path(__file__).parent.parent))
from promptline.config import PromptConfig, load_config
from promptline.probes import (
    ProbeError,
    get_cwd,
    get_exit_status,
    get_hostname,
    get_nix_shell,
    get_repo,
    get_shell_name,
    get_user,
)
from promptline.style import Escape, StyleTree, escaper_for, render

SEPARATOR = "]-["
TRAILER = "-> "

Probe = Callable[[], StyleTree]


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def build_probes(config: PromptConfig) -> list[tuple[str, Probe]]:
    """Probes in display order, bound to this run's settings."""
    env = config.env
    return [
        ("user", get_user),
        ("hostname", get_hostname),
        ("cwd", lambda: get_cwd(env)),
        ("git", lambda: get_repo(config.cwd, config.ref_color)),
        ("nix", lambda: get_nix_shell(env)),
        ("shell", get_shell_name),
        ("status", lambda: get_exit_status(env)),
    ]


def collect(probes: Iterable[tuple[str, Probe]]) -> tuple[list[StyleTree], list[tuple[str, ProbeError]]]:
    """Run every probe, splitting results into segments and failures."""
    segments: list[StyleTree] = []
    failures: list[tuple[str, ProbeError]] = []
    for label, probe in probes:
        try:
            segments.append(probe())
        except ProbeError as e:
            failures.append((label, e))
    return segments, failures


def format_line(segments: Iterable[StyleTree], escape: Escape | None = None) -> str:
    rendered = [render(segment, escape) for segment in segments]
    if not rendered:
        return TRAILER
    return "[" + SEPARATOR.join(rendered) + "] " + TRAILER


def format_failure(label: str, error: BaseException) -> str:
    """Describe a failed probe followed by its whole cause chain."""
    lines = [f"failed to get {label} info", "Caused by:"]
    err: BaseException | None = error
    while err is not None:
        lines.append(str(err) or type(err).__name__)
        err = err.__cause__
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, environ: dict[str, str] | None = None) -> int:
    config = load_config(argv, environ)

    segments, failures = collect(build_probes(config))
    line = format_line(segments, escaper_for(config.shell))

    if config.debug:
        for label, error in failures:
            print(format_failure(label, error), file=sys.stderr)

    # 'replace' keeps a non-UTF-8 terminal from crashing the prompt
    sys.stdout.buffer.write(line.encode("utf-8", errors="replace"))
    sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
