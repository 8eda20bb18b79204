"""
Exception classes for gitpin.
"""


class GitpinError(Exception):
    """Base exception for all gitpin errors."""

    pass


class OptionsError(GitpinError):
    """Raised when the checkout options are incomplete or inconsistent."""

    pass


class InvalidOptionError(OptionsError):
    """Raised when a single option has an invalid value."""

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f'"{key}" is invalid: {message}')


class AuthError(GitpinError):
    """Raised when credentials cannot be turned into a transport auth method."""

    pass


class StorageError(GitpinError):
    """Raised when the object storage or worktree cannot be prepared."""

    pass


class CheckoutError(GitpinError):
    """Raised when fetching or checking out the commit fails."""

    pass


class CommitNotFoundError(CheckoutError):
    """Raised when the remote does not provide the requested commit."""

    def __init__(self, repo: str, sha: str):
        self.repo = repo
        self.sha = sha
        super().__init__(f"Commit {sha} not found in repository {repo}")
