"""
Worktrees and object storage backends.

Two flavours exist, matching the storage modes:

    fs:  files are written below a directory, objects live in <dir>/.git
    mem: files and objects are kept in memory and vanish with the process

The storage classes are lazy: nothing touches the disk until ``open()`` is
called, so options can be validated before any directory is created.
"""

import logging
import shutil
import stat
from pathlib import Path
from typing import Dict, List, Union

from dulwich.errors import NotGitRepository
from dulwich.repo import BaseRepo, MemoryRepo, Repo

from gitpin.constants import GIT_DIR_NAME
from gitpin.exceptions import StorageError

logger = logging.getLogger(__name__)


class DiskWorktree:
    """Working tree rooted at a directory on disk."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DiskWorktree({self.root})"

    def chroot(self, name: str) -> Path:
        return self.root / name

    def list_files(self) -> List[str]:
        """Relative POSIX paths of all files below the root, excluding .git"""
        if not self.root.exists():
            return []

        files = []
        for path in self.root.rglob("*"):
            rel = path.relative_to(self.root)
            if rel.parts[0] == GIT_DIR_NAME:
                continue
            if path.is_file() or path.is_symlink():
                files.append(rel.as_posix())
        return sorted(files)

    def remove_dotgit(self) -> bool:
        """
        Delete the .git directory below the root.

        Returns:
            True if a .git directory was removed
        """
        dot_git = self.chroot(GIT_DIR_NAME)
        if not dot_git.exists():
            return False
        logger.debug(f"Removing {dot_git}")
        shutil.rmtree(dot_git)
        return True


class MemoryWorktree:
    """Working tree held in a dict of path -> content."""

    def __init__(self):
        self._files: Dict[str, bytes] = {}
        self._modes: Dict[str, int] = {}

    def __repr__(self) -> str:
        return f"MemoryWorktree({len(self._files)} files)"

    def __contains__(self, path: str) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def write_file(self, path: str, data: bytes, mode: int = 0o100644) -> None:
        self._files[path] = data
        self._modes[path] = mode

    def read_file(self, path: str) -> bytes:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path)

    def is_symlink(self, path: str) -> bool:
        return stat.S_ISLNK(self._modes.get(path, 0))

    def list_files(self) -> List[str]:
        return sorted(self._files)

    def remove_dotgit(self) -> bool:
        # nothing on disk to remove
        return False


Worktree = Union[DiskWorktree, MemoryWorktree]


class DiskStorage:
    """Object storage in the .git directory of a disk worktree."""

    def __init__(self, git_dir: Path):
        self.git_dir = Path(git_dir)
        self._created_root = False
        self._created_repo = False

    def __repr__(self) -> str:
        return f"DiskStorage({self.git_dir})"

    @property
    def worktree_root(self) -> Path:
        return self.git_dir.parent

    def open(self) -> Repo:
        """
        Open the repository, initializing it if needed.

        An existing repository is reused so that a second checkout into the
        same directory only fetches what is missing.

        Raises:
            StorageError: If the directory holds files but no repository
        """
        root = self.worktree_root

        if self.git_dir.exists():
            try:
                logger.debug(f"Reusing repository at {root}")
                return Repo(str(root))
            except NotGitRepository as e:
                raise StorageError(f"{self.git_dir} is not a valid git directory: {e}")

        if root.exists():
            if not root.is_dir():
                raise StorageError(f"destination path '{root}' is not a directory")
            if any(root.iterdir()):
                raise StorageError(
                    f"destination path '{root}' already exists and is not an empty directory"
                )

        try:
            self._created_root = not root.exists()
            root.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Initializing repository at {root}")
            repo = Repo.init(str(root))
        except OSError as e:
            raise StorageError(f"could not initialize repository at {root}: {e}")
        self._created_repo = True
        return repo

    def discard(self) -> None:
        """Remove a repository created by ``open``. Reused repositories are kept."""
        if not self._created_repo:
            return

        root = self.worktree_root
        logger.debug(f"Removing repository created at {root}")
        try:
            shutil.rmtree(self.git_dir)
            if self._created_root and not any(root.iterdir()):
                root.rmdir()
        except OSError as e:
            logger.warning(f"Could not clean up {root}: {e}")
        self._created_repo = False


class MemoryStorage:
    """Object storage kept in memory."""

    def __repr__(self) -> str:
        return "MemoryStorage()"

    def open(self) -> MemoryRepo:
        return MemoryRepo()

    def discard(self) -> None:
        pass


Storage = Union[DiskStorage, MemoryStorage]


def is_on_disk(repo: BaseRepo) -> bool:
    return isinstance(repo, Repo)
