"""Shared pytest fixtures."""

from pathlib import Path
from typing import Callable

import pytest

OID = "abcd1234ef5678901234567890abcdef12345678"


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Build a minimal .git directory; returns the working tree root.

    head: HEAD content. refs: {ref path: object id} written as loose files.
    """

    def _make(
        name: str = "proj",
        head: str = "ref: refs/heads/main\n",
        refs: dict[str, str] | None = None,
    ) -> Path:
        root = tmp_path / name
        git_dir = root / ".git"
        write(git_dir / "HEAD", head)
        for ref_path, oid in (refs if refs is not None else {"refs/heads/main": OID}).items():
            write(git_dir / ref_path, oid + "\n")
        return root

    return _make


@pytest.fixture
def prompt_env(tmp_path: Path) -> dict[str, str]:
    """Environment for a prompt draw with nothing optional set."""
    return {
        "PWD": str(tmp_path),
        "HOME": str(tmp_path.parent),
        "PATH": "/usr/local/bin:/usr/bin:/bin",
    }
