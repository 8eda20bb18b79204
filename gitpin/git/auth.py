"""
Credentials for talking to the remote.

The objects here only describe the credentials. ``get_client`` turns them into
a dulwich transport client: ssh clients are built directly, everything else
goes through ``get_transport_and_path``.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

from dulwich.client import GitClient, SSHGitClient, get_transport_and_path

from gitpin.exceptions import AuthError

logger = logging.getLogger(__name__)

SSH_SCHEMES = ("ssh", "git+ssh", "ssh+git")
HTTP_SCHEMES = ("http", "https")

# user@host:path, as understood by git for ssh remotes
_SCP_LIKE = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]{2,}):(?P<path>(?!//).+)$")


@dataclass
class BasicAuth:
    username: str
    password: str = field(repr=False)


@dataclass
class SSHPublicKeys:
    user: str
    pem_path: str
    passphrase: str = field(default="", repr=False)


AuthMethod = Union[BasicAuth, SSHPublicKeys]


def classify_url(url: str) -> str:
    """
    Tell which kind of transport a repository URL uses.

    Returns:
        One of "ssh", "http", "git" or "local"
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in SSH_SCHEMES:
        return "ssh"
    if scheme in HTTP_SCHEMES:
        return "http"
    if scheme == "git":
        return "git"
    if scheme == "file":
        return "local"
    if _SCP_LIKE.match(url) and "://" not in url:
        return "ssh"
    return "local"


def url_username(url: str) -> Optional[str]:
    """
    Return the user embedded in an ssh URL, if any.

    Examples:
        ssh://alice@example.com/repo.git -> alice
        alice@example.com:org/repo.git -> alice
        example.com:org/repo.git -> None
    """
    if classify_url(url) != "ssh":
        return None

    parsed = urlparse(url)
    if parsed.scheme.lower() in SSH_SCHEMES:
        return parsed.username or None

    match = _SCP_LIKE.match(url)
    if match:
        return match.group("user") or None
    return None


def ssh_public_keys(
    url: str, pem_path: str, passphrase: str = "", default_user: str = "git"
) -> SSHPublicKeys:
    """
    Build ssh credentials for a key file, taking the user from the URL when present.

    Raises:
        AuthError: If the key file cannot be read
    """
    user = url_username(url) or default_user

    if not os.path.isfile(pem_path):
        raise AuthError(f"ssh key {pem_path} does not exist or is not a file")
    if not os.access(pem_path, os.R_OK):
        raise AuthError(f"ssh key {pem_path} is not readable")

    return SSHPublicKeys(user=user, pem_path=pem_path, passphrase=passphrase)


def client_kwargs(auth: Optional[AuthMethod], url: str) -> Dict[str, Any]:
    """
    Keyword arguments for the dulwich client of the URL's transport.

    Args:
        auth: Credentials, or None for anonymous access
        url: Repository URL the credentials will be used against

    Returns:
        Dictionary of keyword arguments for the transport client

    Raises:
        AuthError: If the credentials don't match the URL's transport
    """
    if auth is None:
        return {}

    kind = classify_url(url)

    if isinstance(auth, BasicAuth):
        if kind != "http":
            raise AuthError(
                f"basic auth options require an http(s) repository url, got {url}"
            )
        return {"username": auth.username, "password": auth.password}

    if isinstance(auth, SSHPublicKeys):
        if kind != "ssh":
            raise AuthError(f"ssh auth options require an ssh repository url, got {url}")

        kwargs: Dict[str, Any] = {"username": auth.user, "key_filename": auth.pem_path}
        if auth.passphrase:
            # the subprocess ssh vendor can't feed a passphrase to ssh
            from dulwich.contrib.paramiko_vendor import ParamikoSSHVendor

            logger.debug("Using paramiko ssh vendor for passphrase protected key")
            kwargs["vendor"] = ParamikoSSHVendor(passphrase=auth.passphrase)

        return kwargs

    raise AuthError(f"unsupported auth method {type(auth).__name__}")


def split_ssh_url(url: str) -> Tuple[str, Optional[int], str]:
    """
    Split an ssh URL into host, port and remote path.

    Examples:
        ssh://git@example.com:2222/org/repo.git -> (example.com, 2222, /org/repo.git)
        git@example.com:org/repo.git -> (example.com, None, org/repo.git)

    Raises:
        ValueError: If the URL is not an ssh URL
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() in SSH_SCHEMES:
        if not parsed.hostname:
            raise ValueError(f"no host in {url}")
        return parsed.hostname, parsed.port, parsed.path

    match = _SCP_LIKE.match(url)
    if match is None or "://" in url:
        raise ValueError(f"{url} is not an ssh url")
    return match.group("host"), None, match.group("path")


def get_client(url: str, auth: Optional[AuthMethod] = None) -> Tuple[GitClient, str]:
    """
    Transport client and remote path for a repository URL.

    Raises:
        AuthError: If the credentials don't match the URL's transport
        ValueError: If dulwich can't make sense of the URL
    """
    kwargs = client_kwargs(auth, url)
    if isinstance(auth, SSHPublicKeys):
        # get_transport_and_path always passes the URL's user itself
        host, port, path = split_ssh_url(url)
        return SSHGitClient(host, port=port, **kwargs), path
    return get_transport_and_path(url, **kwargs)
