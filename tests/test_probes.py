"""Tests for promptline/probes.py"""

import subprocess
from pathlib import Path

import pytest

from promptline.probes import (
    ExitStatusError,
    HostnameError,
    NotInNixShell,
    ProbeError,
    RepoProbeError,
    ShellNameError,
    UserError,
    abbreviate_home,
    detect_nix_shell,
    get_cwd,
    get_exit_status,
    get_hostname,
    get_nix_shell,
    get_repo,
    get_shell_name,
    get_user,
)
from promptline.repo import NotARepository
from promptline.style import Bold, Color, Foreground, Leaf, hex_color


def _completed(stdout: str) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["ps"], returncode=0, stdout=stdout, stderr="")


# ============================================================================
# Identity
# ============================================================================


def test_get_user(monkeypatch):
    monkeypatch.setattr("getpass.getuser", lambda: "alice")
    assert get_user() == Foreground(Bold(Leaf("alice")), Color.MAGENTA)


def test_get_user_failure(monkeypatch):
    def fail():
        raise OSError("No username set in the environment")

    monkeypatch.setattr("getpass.getuser", fail)
    with pytest.raises(UserError) as exc:
        get_user()
    assert isinstance(exc.value.__cause__, OSError)


def test_get_hostname(monkeypatch):
    monkeypatch.setattr("socket.gethostname", lambda: "box")
    assert get_hostname().plain() == "box"
    assert get_hostname().color is Color.GREEN


def test_get_hostname_failure(monkeypatch):
    def fail():
        raise OSError("uname failed")

    monkeypatch.setattr("socket.gethostname", fail)
    with pytest.raises(HostnameError):
        get_hostname()


# ============================================================================
# Working directory
# ============================================================================


@pytest.mark.parametrize(
    "path,home,expected",
    [
        ("/home/u/proj", "/home/u", "~/proj"),
        ("/home/u", "/home/u", "~"),
        ("/home/u/proj", "/home/u/", "~/proj"),
        ("/home/user2/x", "/home/u", "/home/user2/x"),
        ("/srv/home/u", "/home/u", "/srv/home/u"),
        ("/etc", None, "/etc"),
        ("/etc", "", "/etc"),
        ("/etc", "/", "/etc"),
    ],
)
def test_abbreviate_home(path: str, home, expected: str):
    assert abbreviate_home(path, home) == expected


def test_get_cwd():
    tree = get_cwd({"PWD": "/home/u/proj", "HOME": "/home/u"})
    assert tree == Foreground(Bold(Leaf("~/proj")), Color.BLUE)


def test_get_cwd_without_pwd():
    """A missing PWD is drawn as a red warning, not an error."""
    assert get_cwd({"HOME": "/home/u"}) == Foreground(Bold(Leaf("!!!")), Color.RED)


# ============================================================================
# Exit status
# ============================================================================


def test_exit_status_success():
    assert get_exit_status({"PROMPT_STATUS": "0"}) == Foreground(Bold(Leaf("0")), Color.GREEN)


def test_exit_status_failure_code():
    assert get_exit_status({"PROMPT_STATUS": "127"}).color is Color.RED


def test_exit_status_custom_variable():
    assert get_exit_status({"LAST": "1"}, var="LAST").plain() == "1"


@pytest.mark.parametrize("env", [{}, {"PROMPT_STATUS": ""}, {"PROMPT_STATUS": "  "}])
def test_exit_status_missing(env):
    with pytest.raises(ExitStatusError):
        get_exit_status(env)


# ============================================================================
# Parent shell
# ============================================================================


@pytest.mark.parametrize("stdout,expected", [("zsh\n", "zsh"), ("-bash\n", "bash"), ("/bin/fish\n", "fish")])
def test_get_shell_name(stdout: str, expected: str):
    calls = []

    def run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return _completed(stdout)

    tree = get_shell_name(run=run, pid=4242)
    assert tree == Foreground(Bold(Leaf(expected)), Color.YELLOW)
    assert calls[0][0] == ["ps", "-p", "4242", "-o", "comm="]
    assert calls[0][1]["timeout"] > 0


@pytest.mark.parametrize(
    "error",
    [
        FileNotFoundError(2, "No such file or directory", "ps"),
        subprocess.TimeoutExpired(cmd="ps", timeout=2),
        subprocess.CalledProcessError(returncode=1, cmd="ps"),
    ],
)
def test_get_shell_name_errors(error: Exception):
    def run(cmd, **kwargs):
        raise error

    with pytest.raises(ShellNameError) as exc:
        get_shell_name(run=run, pid=1)
    assert exc.value.__cause__ is error


def test_get_shell_name_empty_output():
    with pytest.raises(ShellNameError, match="no command name"):
        get_shell_name(run=lambda cmd, **kw: _completed("\n"), pid=1)


@pytest.mark.integration
def test_get_shell_name_real_process():
    """Our parent (pytest's launcher) has some command name."""
    assert get_shell_name().plain() != ""


# ============================================================================
# Nix shell
# ============================================================================


@pytest.mark.parametrize(
    "env,expected",
    [
        ({"IN_NIX_SHELL": "pure"}, "pure"),
        ({"IN_NIX_SHELL": "impure"}, "impure"),
        ({"IN_NIX_SHELL": "1"}, "unknown"),
        ({"IN_NIX_SHELL": "impure", "PATH": "/usr/bin"}, "impure"),
        ({"PATH": "/usr/bin:/nix/store/abc-hello/bin"}, "unknown"),
    ],
)
def test_detect_nix_shell(env, expected: str):
    assert detect_nix_shell(env) == expected


@pytest.mark.parametrize(
    "env",
    [
        {},
        {"PATH": "/usr/bin:/bin"},
        {"PATH": "/nix/storefront/bin:/run/current-system/sw/bin"},
        {"PATH": ""},
    ],
)
def test_not_in_nix_shell(env):
    with pytest.raises(NotInNixShell, match="not in a nix shell"):
        detect_nix_shell(env)


def test_get_nix_shell_segment():
    assert get_nix_shell({"IN_NIX_SHELL": "pure"}) == Foreground(Bold(Leaf("nix: pure")), Color.WHITE)


# ============================================================================
# Git
# ============================================================================


def test_get_repo(make_repo):
    color = hex_color("#d8d0c8")
    tree = get_repo(make_repo(), color)
    assert tree == Foreground(Bold(Leaf("main abcd1..")), color)


def test_get_repo_outside_repository(tmp_path: Path, monkeypatch):
    monkeypatch.setattr("promptline.probes.resolve_reference", _raise_not_a_repo)
    with pytest.raises(RepoProbeError) as exc:
        get_repo(tmp_path, Color.WHITE)
    assert isinstance(exc.value.__cause__, NotARepository)


def _raise_not_a_repo(start):
    raise NotARepository(f"not a git repository: {start}")


def test_probe_errors_share_base():
    for cls in (UserError, HostnameError, ExitStatusError, ShellNameError, NotInNixShell, RepoProbeError):
        assert issubclass(cls, ProbeError)
