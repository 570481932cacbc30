"""Prompt segment probes.

Each probe gathers one piece of context and returns a styled segment, or
raises a ProbeError subclass naming what went wrong. Probes are independent:
the assembler drops failed ones and keeps drawing the rest.
"""

import getpass
import os
import socket
import subprocess
from pathlib import Path
from typing import Callable, Mapping

from promptline.repo import RepoError, resolve_reference
from promptline.style import Color, ColorSpec, StyleTree, paint

NIX_STORE = Path("/nix/store")
SHELL_TIMEOUT = 2  # seconds
STATUS_VAR = "PROMPT_STATUS"


# Exception hierarchy
class ProbeError(Exception):
    """Base exception for a failed segment."""
    pass


class UserError(ProbeError):
    """Raised when the login name cannot be determined."""
    pass


class HostnameError(ProbeError):
    """Raised when the host name cannot be determined."""
    pass


class ExitStatusError(ProbeError):
    """Raised when no exit status was handed to the prompt."""
    pass


class ShellNameError(ProbeError):
    """Raised when the parent shell cannot be identified."""
    pass


class NotInNixShell(ProbeError):
    """Raised outside of nix-shell / nix shell / nix develop."""

    def __init__(self, message: str = "not in a nix shell"):
        super().__init__(message)


class RepoProbeError(ProbeError):
    """Raised when the current directory has no resolvable git reference."""
    pass


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def get_user() -> StyleTree:
    try:
        user = getpass.getuser()
    except (OSError, KeyError) as e:
        # KeyError: uid missing from the password database
        raise UserError(f"failed to get user: {e}") from e
    return paint(user, Color.MAGENTA)


def get_hostname() -> StyleTree:
    try:
        host = socket.gethostname()
    except OSError as e:
        raise HostnameError(f"failed to get host: {e}") from e
    if not host:
        raise HostnameError("failed to get host: empty host name")
    return paint(host, Color.GREEN)


# ---------------------------------------------------------------------------
# Working directory
# ---------------------------------------------------------------------------

def abbreviate_home(path: str, home: str | None) -> str:
    """Replace a leading $HOME with "~" (whole path components only)."""
    if not home:
        return path
    home = home.rstrip("/") or "/"
    if home == "/":
        return path
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~" + path[len(home):]
    return path


def get_cwd(env: Mapping[str, str]) -> StyleTree:
    """Working directory from $PWD. Never fails: a missing PWD shows "!!!"."""
    cwd = env.get("PWD")
    if cwd is None:
        return paint("!!!", Color.RED)
    return paint(abbreviate_home(cwd, env.get("HOME")), Color.BLUE)


# ---------------------------------------------------------------------------
# Last exit status
# ---------------------------------------------------------------------------

def get_exit_status(env: Mapping[str, str], var: str = STATUS_VAR) -> StyleTree:
    status = env.get(var, "").strip()
    if not status:
        raise ExitStatusError(f"no exit status in ${var}")
    return paint(status, Color.GREEN if status == "0" else Color.RED)


# ---------------------------------------------------------------------------
# Parent shell
# ---------------------------------------------------------------------------

Runner = Callable[..., subprocess.CompletedProcess]


def get_shell_name(run: Runner = subprocess.run, pid: int | None = None) -> StyleTree:
    """Ask ps for the name of the process that launched us (the shell)."""
    pid = os.getppid() if pid is None else pid
    try:
        result = run(
            ["ps", "-p", str(pid), "-o", "comm="],
            capture_output=True,
            text=True,
            timeout=SHELL_TIMEOUT,
            check=True,
        )
    except subprocess.TimeoutExpired as e:
        raise ShellNameError(f"ps timed out after {SHELL_TIMEOUT}s") from e
    except subprocess.CalledProcessError as e:
        raise ShellNameError(f"ps exited with status {e.returncode} for pid {pid}") from e
    except OSError as e:
        # FileNotFoundError when ps is not installed
        raise ShellNameError(f"failed to run ps: {e}") from e

    # Login shells show up as "-bash"; some platforms report a full path
    name = os.path.basename(result.stdout.strip()).lstrip("-")
    if not name:
        raise ShellNameError(f"ps returned no command name for pid {pid}")
    return paint(name, Color.YELLOW)


# ---------------------------------------------------------------------------
# Nix shell
# ---------------------------------------------------------------------------

def detect_nix_shell(env: Mapping[str, str]) -> str:
    """Return "pure", "impure" or "unknown", or raise NotInNixShell.

    `nix shell` does not set IN_NIX_SHELL, so fall back to looking for
    store paths on $PATH.
    """
    shell_type = env.get("IN_NIX_SHELL")
    if shell_type is not None:
        return shell_type if shell_type in ("pure", "impure") else "unknown"

    path = env.get("PATH")
    if path is None:
        raise NotInNixShell()
    for entry in path.split(os.pathsep):
        if entry and Path(entry).is_relative_to(NIX_STORE):
            return "unknown"
    raise NotInNixShell()


def get_nix_shell(env: Mapping[str, str]) -> StyleTree:
    return paint(f"nix: {detect_nix_shell(env)}", Color.WHITE)


# ---------------------------------------------------------------------------
# Git
# ---------------------------------------------------------------------------

def get_repo(cwd: Path | str, color: ColorSpec) -> StyleTree:
    try:
        ref = resolve_reference(cwd)
    except RepoError as e:
        raise RepoProbeError(f"failed to resolve git reference from {cwd}") from e
    return paint(ref.display(), color)
