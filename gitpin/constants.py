from enum import Enum


class StorageMode(str, Enum):
    """Where git objects and checked out files are kept."""

    FS = "fs"
    MEM = "mem"


GIT_DIR_NAME = ".git"

SHA_LENGTH = 40

# ssh remotes without an explicit user
DEFAULT_SSH_USER = "git"

# when authenticating with a token, the username is ignored but can't be empty
DEFAULT_TOKEN_USER = "token"

DEFAULT_STORAGE_MODE = StorageMode.FS
