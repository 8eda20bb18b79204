"""
Options of the checkout command.

The options are filled from the command line in three steps: positional
arguments (``bind_args``), flags (``bind_flags``) and the storage mode
(``set_storage_mode``). ``validate`` then checks the whole set before any
network or disk access happens.

Usage:
    options = Options()
    options.bind_args([repo, sha])
    options.bind_flags(flags)
    options.set_storage_mode(StorageMode.FS)
    options.validate()
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from gitpin.constants import (
    DEFAULT_SSH_USER,
    DEFAULT_TOKEN_USER,
    GIT_DIR_NAME,
    SHA_LENGTH,
    StorageMode,
)
from gitpin.exceptions import InvalidOptionError, OptionsError
from gitpin.git.auth import AuthMethod, BasicAuth, ssh_public_keys
from gitpin.git.storage import (
    DiskStorage,
    DiskWorktree,
    MemoryStorage,
    MemoryWorktree,
    Storage,
    Worktree,
)

__all__ = [
    "BasicAuthOptions",
    "Options",
    "SSHAuthOptions",
    "StorageMode",
]

logger = logging.getLogger(__name__)

_HEX = re.compile(r"[0-9a-fA-F]+")


@dataclass
class SSHAuthOptions:
    pem_path: str = ""
    passphrase: str = field(default="", repr=False)


@dataclass
class BasicAuthOptions:
    username: str = ""
    password: str = field(default="", repr=False)


@dataclass
class Options:
    repo: str = ""
    sha: str = ""
    directory: str = ""
    remove_dotgit: bool = False
    basic_auth: Optional[BasicAuthOptions] = None
    ssh_auth: Optional[SSHAuthOptions] = None

    _storage: Optional[Storage] = field(default=None, init=False, repr=False)
    _worktree: Optional[Worktree] = field(default=None, init=False, repr=False)

    def auth(self) -> Optional[AuthMethod]:
        """
        Credentials for the remote, or None for anonymous access.

        For ssh the user defaults to "git" unless the repository URL names one.
        For basic auth an empty username is replaced by "token", since token
        based auth ignores the name but rejects an empty one.

        Raises:
            AuthError: If the ssh key file cannot be read
        """
        if self.ssh_auth is not None:
            return ssh_public_keys(
                self.repo,
                self.ssh_auth.pem_path,
                self.ssh_auth.passphrase,
                default_user=DEFAULT_SSH_USER,
            )

        if self.basic_auth is not None:
            return BasicAuth(
                username=self.basic_auth.username or DEFAULT_TOKEN_USER,
                password=self.basic_auth.password,
            )

        return None

    def validate(self) -> None:
        """
        Check that the options describe a checkout that can be attempted.

        Raises:
            InvalidOptionError: If a single option has a bad value
            OptionsError: If options conflict or storage was never set up
        """
        if not self.repo:
            raise InvalidOptionError("repo", "it is required")

        if len(self.sha) != SHA_LENGTH or not _HEX.fullmatch(self.sha):
            raise InvalidOptionError("sha", "must be full 40 hexadecimal character SHA1")

        if self.basic_auth is not None and self.ssh_auth is not None:
            raise OptionsError("cannot specify both basic auth and ssh auth options")

        if self.basic_auth is not None:
            if not self.basic_auth.username:
                raise InvalidOptionError(
                    "username",
                    'required if password specified (if using token, set username to "token")',
                )

            if not self.basic_auth.password:
                raise InvalidOptionError("password", "required if username specified")

        if self.ssh_auth is not None:
            if not self.ssh_auth.pem_path:
                raise InvalidOptionError("key-path", "required if ssh options set")

        if self._worktree is None or self._storage is None:
            raise OptionsError("filesystem storage not initialized")

    def bind_args(self, args: List[str]) -> None:
        if len(args) != 2:
            raise OptionsError(
                "missing arguments: must specify both repo and sha arguments"
            )
        self.repo, self.sha = args[0], args[1]

    def bind_flags(self, flags: Mapping[str, Any]) -> None:
        """
        Copy parsed flag values onto the options.

        Auth option groups are only created when one of their flags is set, so
        an unset group stays None and does not take part in validation.

        Args:
            flags: Parsed flag values keyed by parameter name
                   (directory, username, password, key_path, key_passphrase, rm_dotgit)
        """
        self.directory = _flag(flags, "directory") or ""

        username = _flag(flags, "username")
        if username:
            if self.basic_auth is None:
                self.basic_auth = BasicAuthOptions()
            self.basic_auth.username = username

        password = _flag(flags, "password")
        if password:
            if self.basic_auth is None:
                self.basic_auth = BasicAuthOptions()
            self.basic_auth.password = password

        key_path = _flag(flags, "key_path")
        if key_path:
            if self.ssh_auth is None:
                self.ssh_auth = SSHAuthOptions()
            self.ssh_auth.pem_path = str(key_path)

        key_passphrase = _flag(flags, "key_passphrase")
        if key_passphrase:
            if self.ssh_auth is None:
                self.ssh_auth = SSHAuthOptions()
            self.ssh_auth.passphrase = key_passphrase

        self.remove_dotgit = bool(_flag(flags, "rm_dotgit"))

    def set_storage_mode(self, mode: Union[StorageMode, str]) -> None:
        """
        Create the worktree and object storage for the given mode.

        Raises:
            OptionsError: If the directory is unset or the mode is unknown
        """
        if not self.directory:
            raise OptionsError("must initialize directory before setting storage mode")

        mode_name = getattr(mode, "value", mode)
        logger.debug(f"initializing working tree and storage (storage mode: {mode_name})")

        try:
            mode = StorageMode(mode_name)
        except ValueError:
            raise OptionsError(f'"{mode_name}" is an invalid storage mode')

        if mode is StorageMode.FS:
            try:
                abs_dir = Path(self.directory).expanduser().absolute()
            except (OSError, RuntimeError) as e:
                raise OptionsError(f"invalid directory: {e}")

            worktree = DiskWorktree(abs_dir)
            self._worktree = worktree
            self._storage = DiskStorage(worktree.chroot(GIT_DIR_NAME))
        else:
            self._worktree = MemoryWorktree()
            self._storage = MemoryStorage()

    def get_worktree(self) -> Optional[Worktree]:
        return self._worktree

    def get_storage(self) -> Optional[Storage]:
        return self._storage


def _flag(flags: Mapping[str, Any], name: str) -> Any:
    try:
        return flags[name]
    except KeyError:
        raise OptionsError(f'flag "{name}" is not defined')
