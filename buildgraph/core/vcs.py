"""Best-effort git revision lookup without invoking git."""

from __future__ import annotations

from pathlib import Path

import structlog

NOT_AVAILABLE = "N/A"

logger = structlog.get_logger(__name__)


def read_revision(repo_path: str | Path) -> str:
    """Return the commit SHA checked out in *repo_path*.

    Reads ``.git/HEAD`` directly. A symbolic HEAD is resolved through the
    loose ref file first and ``packed-refs`` second. A ``.git`` *file*
    (worktrees, submodules) is followed through its ``gitdir:`` pointer.

    Any missing or unreadable metadata yields :data:`NOT_AVAILABLE`; this
    function never raises for I/O problems.
    """
    try:
        git_dir = _locate_git_dir(Path(repo_path))
        if git_dir is None:
            logger.warning("vcs.not_a_repository", path=str(repo_path))
            return NOT_AVAILABLE

        head_file = git_dir / "HEAD"
        if not head_file.is_file():
            return NOT_AVAILABLE

        head = head_file.read_text(encoding="utf-8").strip()
        if not head.startswith("ref:"):
            # Detached HEAD holds the SHA itself
            return head or NOT_AVAILABLE

        ref_name = head[len("ref:"):].strip()
        return _resolve_ref(git_dir, ref_name) or NOT_AVAILABLE
    except (OSError, UnicodeDecodeError):
        logger.exception("vcs.read_failed", path=str(repo_path))
        return NOT_AVAILABLE


def _locate_git_dir(repo_path: Path) -> Path | None:
    dot_git = repo_path / ".git"
    if dot_git.is_dir():
        return dot_git
    if dot_git.is_file():
        content = dot_git.read_text(encoding="utf-8").strip()
        if content.startswith("gitdir:"):
            target = Path(content[len("gitdir:"):].strip())
            if not target.is_absolute():
                target = repo_path / target
            return target if target.is_dir() else None
    return None


def _resolve_ref(git_dir: Path, ref_name: str) -> str | None:
    # Linked worktrees keep shared refs in the directory named by "commondir"
    search_dirs = [git_dir]
    commondir = git_dir / "commondir"
    if commondir.is_file():
        common = Path(commondir.read_text(encoding="utf-8").strip())
        search_dirs.append(common if common.is_absolute() else git_dir / common)

    for base in search_dirs:
        ref_file = base.joinpath(*ref_name.split("/"))
        if ref_file.is_file():
            sha = ref_file.read_text(encoding="utf-8").strip()
            if sha:
                return sha

    for base in search_dirs:
        packed = base / "packed-refs"
        if not packed.is_file():
            continue
        for line in packed.read_text(encoding="utf-8").splitlines():
            if not line or line.startswith(("#", "^")):
                continue
            sha, _, name = line.partition(" ")
            if name.strip() == ref_name:
                return sha.strip()
    return None
