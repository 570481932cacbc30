"""Resolve the checked-out git reference without running git.

Walks up from a directory to the nearest ".git" entry, follows "gitdir:"
indirection files (submodules, linked worktrees), reads HEAD and turns it
into a short description:

    refs/heads/main -> "main abcd1.."   (symbolic ref, 5-char hash)
    detached HEAD   -> "abcd1234ef5678" (first 14 chars of HEAD)

Every filesystem step raises its own RepoError subclass with the original
OSError/UnicodeDecodeError chained as __cause__.
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Union

logger = logging.getLogger(__name__)

MARKER = ".git"
GITDIR_PREFIX = "gitdir: "
REF_PREFIX = "ref: "
SHORT_HASH_LEN = 5
DETACHED_LEN = 14
TRUNCATION_MARKER = ".."


# Exception hierarchy
class RepoError(Exception):
    """Base exception for reference resolution failures."""
    pass


class CanonicalizeError(RepoError):
    """Raised when the starting directory cannot be resolved."""
    pass


class NotARepository(RepoError):
    """Raised when no ancestor directory holds a marker."""
    pass


class MarkerReadError(RepoError):
    """Raised when a marker file cannot be read."""
    pass


class UnexpectedMarkerContent(RepoError):
    """Raised when a marker file is not a "gitdir: <path>" pointer."""
    pass


class HeadReadError(RepoError):
    """Raised when HEAD cannot be read."""
    pass


class RefReadError(RepoError):
    """Raised when the reference HEAD points at cannot be read."""
    pass


class NoReferenceName(RepoError):
    """Raised when a reference path has no final component."""
    pass


@dataclass(frozen=True)
class SymbolicRef:
    """HEAD points at a named reference."""
    name: str
    short_hash: str
    is_truncated: bool

    def display(self) -> str:
        marker = TRUNCATION_MARKER if self.is_truncated else ""
        return f"{self.name} {self.short_hash}{marker}"


@dataclass(frozen=True)
class DetachedHead:
    """HEAD holds an object id directly."""
    prefix: str

    def display(self) -> str:
        return self.prefix


RepoReference = Union[SymbolicRef, DetachedHead]


def _read_text(path: Path) -> str:
    # Whole-file UTF-8; bad bytes raise UnicodeDecodeError rather than being replaced
    return path.read_text(encoding="utf-8")


def find_marker(start: Path | str) -> Path:
    """Return the nearest ".git" entry at or above *start*.

    Raises:
        CanonicalizeError: *start* does not exist or cannot be resolved
        NotARepository: no ancestor up to the filesystem root has a marker
    """
    try:
        current = Path(start).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise CanonicalizeError(f"failed to resolve directory {start}: {e}") from e

    for directory in (current, *current.parents):
        marker = directory / MARKER
        if marker.exists():
            logger.debug("Found %s at %s", MARKER, directory)
            return marker

    raise NotARepository(f"not a git repository (or any parent up to /): {current}")


def resolve_metadata_dir(marker: Path) -> Path:
    """Return the metadata directory a marker stands for.

    A directory marker is used directly. A file marker must contain
    "gitdir: <path>"; relative paths are taken from the marker's directory.
    """
    if marker.is_dir():
        return marker

    try:
        content = _read_text(marker)
    except (OSError, UnicodeDecodeError) as e:
        raise MarkerReadError(f"failed to read {marker}: {e}") from e

    if not content.startswith(GITDIR_PREFIX):
        raise UnexpectedMarkerContent(f"{marker} does not start with {GITDIR_PREFIX!r}")

    target = content[len(GITDIR_PREFIX):].strip()
    if not target:
        raise UnexpectedMarkerContent(f"{marker} has an empty gitdir path")

    git_dir = marker.parent / target
    logger.debug("Followed %s to %s", marker, git_dir)
    return git_dir


def read_head(git_dir: Path) -> str | DetachedHead:
    """Read HEAD: a reference path ("refs/heads/main") or a DetachedHead."""
    head = git_dir / "HEAD"
    try:
        content = _read_text(head)
    except (OSError, UnicodeDecodeError) as e:
        raise HeadReadError(f"failed to read {head}: {e}") from e

    if not content.startswith(REF_PREFIX):
        logger.debug("Detached HEAD in %s", git_dir)
        return DetachedHead(content[:DETACHED_LEN])

    return content[len(REF_PREFIX):].strip()


def common_dir(git_dir: Path) -> Path:
    """Directory holding shared refs.

    Linked worktrees keep their own HEAD but store branches in the main
    repository, named by a "commondir" file. Elsewhere this is git_dir itself.
    """
    pointer = git_dir / "commondir"
    if not pointer.is_file():
        return git_dir
    try:
        target = _read_text(pointer).strip()
    except (OSError, UnicodeDecodeError) as e:
        raise RefReadError(f"failed to read {pointer}: {e}") from e
    return git_dir / target if target else git_dir


def _lookup_packed_ref(directory: Path, ref_path: str) -> str | None:
    """Find *ref_path* in packed-refs, or None if the file or entry is absent."""
    packed = directory / "packed-refs"
    if not packed.is_file():
        return None
    for line in _read_text(packed).splitlines():
        # "# pack-refs with: ..." header and "^<oid>" peeled-tag lines
        if not line or line[0] in "#^":
            continue
        oid, _, name = line.partition(" ")
        if name.strip() == ref_path:
            return oid
    return None


def read_ref(git_dir: Path, ref_path: str) -> str:
    """Return the object id stored for *ref_path* (loose file, then packed-refs)."""
    candidates = [git_dir]
    shared = common_dir(git_dir)
    if shared != git_dir:
        candidates.append(shared)

    missing: OSError | None = None
    for directory in candidates:
        ref_file = directory / ref_path
        try:
            return _read_text(ref_file).strip()
        except FileNotFoundError as e:
            missing = missing or e
        except (OSError, UnicodeDecodeError) as e:
            raise RefReadError(f"failed to read {ref_file}: {e}") from e

    for directory in candidates:
        try:
            oid = _lookup_packed_ref(directory, ref_path)
        except (OSError, UnicodeDecodeError) as e:
            raise RefReadError(f"failed to read {directory / 'packed-refs'}: {e}") from e
        if oid is not None:
            logger.debug("Resolved %s from packed-refs in %s", ref_path, directory)
            return oid.strip()

    raise RefReadError(f"failed to read {git_dir / ref_path}: {missing}") from missing


def resolve_ref(git_dir: Path, ref_path: str) -> SymbolicRef:
    """Turn a reference path into name + short hash."""
    name = PurePosixPath(ref_path).name
    if name in ("", ".."):
        raise NoReferenceName(f"reference path has no name: {ref_path!r}")

    oid = read_ref(git_dir, ref_path)
    return SymbolicRef(
        name=name,
        short_hash=oid[:SHORT_HASH_LEN],
        is_truncated=len(oid) > SHORT_HASH_LEN,
    )


def resolve_reference(start: Path | str) -> RepoReference:
    """Describe what is checked out in the repository enclosing *start*."""
    git_dir = resolve_metadata_dir(find_marker(start))
    head = read_head(git_dir)
    if isinstance(head, DetachedHead):
        return head
    return resolve_ref(git_dir, head)
