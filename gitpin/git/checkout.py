"""
Fetch and check out a single commit.

All protocol work is done by dulwich. The remote is first asked for the wanted
commit only (shallow, depth 1), which most hosting services allow for any
reachable commit. If the server refuses that, all advertised refs are fetched
and the commit is looked up among them.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from dulwich import porcelain
from dulwich.client import HTTPProxyUnauthorized, HTTPUnauthorized
from dulwich.errors import GitProtocolError, NotGitRepository
from dulwich.objects import S_ISGITLINK, Commit
from dulwich.repo import BaseRepo

from gitpin.exceptions import (
    AuthError,
    CheckoutError,
    CommitNotFoundError,
    GitpinError,
    StorageError,
)
from gitpin.git.auth import classify_url, get_client
from gitpin.git.storage import MemoryWorktree, Worktree, is_on_disk
from gitpin.options import Options

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    """Outcome of a checkout"""

    sha: str
    worktree: Worktree
    files: List[str] = field(default_factory=list)
    removed_dotgit: bool = False

    @property
    def location(self) -> str:
        if isinstance(self.worktree, MemoryWorktree):
            return "memory"
        return str(self.worktree.root)


def _progress(message: bytes) -> None:
    text = message.decode("utf-8", errors="replace").strip()
    if text:
        logger.debug(text)


def fetch_commit(options: Options, repo: BaseRepo) -> None:
    """
    Make sure the commit named by ``options.sha`` is in the repository's object store.

    Args:
        options: Validated checkout options
        repo: Repository to fetch into

    Raises:
        CommitNotFoundError: If the remote does not have the commit
        AuthError: If the remote rejects the credentials
        CheckoutError: If the remote cannot be reached
    """
    sha = options.sha.lower().encode("ascii")

    if sha in repo.object_store:
        logger.info(f"Commit {options.sha[:7]} already present, skipping fetch")
        return

    auth = options.auth()
    try:
        client, path = get_client(options.repo, auth)
    except ValueError as e:
        raise CheckoutError(f"Unsupported repository url {options.repo}: {e}")

    def want_commit(refs, depth=None):
        return [sha]

    # shallow fetches are only meaningful over the wire
    depth = None if classify_url(options.repo) == "local" else 1

    logger.info(f"Fetching {options.repo}@{options.sha[:7]}")
    try:
        try:
            client.fetch(
                path, repo, determine_wants=want_commit, progress=_progress, depth=depth
            )
        except (GitProtocolError, KeyError) as e:
            logger.debug(f"Fetching a single commit was refused ({e}), fetching all refs")
            client.fetch(path, repo, progress=_progress)
    except (HTTPUnauthorized, HTTPProxyUnauthorized) as e:
        raise AuthError(f"Authentication failed for {options.repo}: {e}")
    except (GitProtocolError, NotGitRepository, OSError) as e:
        raise CheckoutError(f"Failed to fetch {options.repo}: {e}")

    if sha not in repo.object_store:
        raise CommitNotFoundError(options.repo, options.sha)


def materialize(repo: BaseRepo, sha: str, worktree: Worktree) -> None:
    """
    Write the files of a commit into the worktree and point HEAD at it.

    Disk repositories are hard reset, which also writes the index. Memory
    worktrees get every blob of the commit's tree; submodules are skipped.

    Raises:
        CheckoutError: If the object is not a commit
    """
    sha_bytes = sha.lower().encode("ascii")
    commit = repo[sha_bytes]
    if not isinstance(commit, Commit):
        raise CheckoutError(f"{sha} is a {commit.type_name.decode()}, not a commit")

    if is_on_disk(repo):
        logger.debug(f"Resetting working tree to {sha}")
        porcelain.reset(repo, "hard", sha_bytes)
    elif isinstance(worktree, MemoryWorktree):
        for entry in repo.object_store.iter_tree_contents(commit.tree):
            if S_ISGITLINK(entry.mode):
                logger.debug(f"Skipping submodule {entry.path.decode(errors='replace')}")
                continue
            blob = repo[entry.sha]
            worktree.write_file(
                entry.path.decode("utf-8", errors="surrogateescape"),
                blob.as_raw_string(),
                entry.mode,
            )
    else:
        raise StorageError("in-memory storage requires an in-memory worktree")

    repo.refs[b"HEAD"] = commit.id


def checkout(options: Options) -> CheckoutResult:
    """
    Fetch the pinned commit and check it out into the configured worktree.

    Args:
        options: Options that passed ``validate``

    Returns:
        CheckoutResult describing the checked out files
    """
    storage = options.get_storage()
    worktree = options.get_worktree()
    if storage is None or worktree is None:
        raise StorageError("filesystem storage not initialized")

    sha = options.sha.lower()
    repo = storage.open()
    try:
        try:
            fetch_commit(options, repo)
            materialize(repo, sha, worktree)
        finally:
            if is_on_disk(repo):
                repo.close()
    except GitpinError:
        storage.discard()
        raise

    removed = False
    if options.remove_dotgit:
        removed = worktree.remove_dotgit()
        if not removed:
            logger.debug("No .git directory to remove")

    result = CheckoutResult(
        sha=sha, worktree=worktree, files=worktree.list_files(), removed_dotgit=removed
    )
    logger.debug(f"Checked out {options.repo}@{sha[:7]} to {result.location}")
    return result
