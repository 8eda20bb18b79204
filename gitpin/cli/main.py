"""gitpin CLI"""

import posixpath
import sys

import click

from gitpin import __version__
from gitpin.cli.utils.logging import logger, redact, register_secret
from gitpin.config import (
    get_default_key_path,
    get_default_rm_dotgit,
    get_default_storage_mode,
)
from gitpin.constants import StorageMode
from gitpin.exceptions import GitpinError, OptionsError
from gitpin.git.auth import classify_url
from gitpin.git.checkout import checkout
from gitpin.git.storage import MemoryStorage
from gitpin.options import Options

from .debug import add_debug_option


def default_directory(repo: str) -> str:
    """
    Directory name git clone would pick for a repository URL.

    Examples:
        https://github.com/user/repo.git -> repo
        git@github.com:user/repo -> repo
    """
    path = repo.rstrip("/").split(":")[-1]
    name = posixpath.basename(path.replace("\\", "/"))
    if name.endswith(".git"):
        name = name[:-4]
    return name


@click.command(name="gitpin", context_settings={"max_content_width": 100})
@click.version_option(__version__, prog_name="gitpin")
@click.argument("args", nargs=-1, metavar="REPO SHA")
@click.option(
    "-d",
    "--directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to check out into. Default: the repository name.",
)
@click.option(
    "-u",
    "--username",
    envvar="GITPIN_USERNAME",
    default="",
    help='Basic auth username (use "token" when authenticating with a token).',
)
@click.option(
    "-p",
    "--password",
    envvar="GITPIN_PASSWORD",
    default="",
    help="Basic auth password or token.",
)
@click.option(
    "-k",
    "--key-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to an ssh private key (PEM).",
)
@click.option(
    "--key-passphrase",
    envvar="GITPIN_KEY_PASSPHRASE",
    default="",
    help="Passphrase of the ssh private key.",
)
@click.option(
    "--rm-dotgit/--keep-dotgit",
    default=None,
    help="Remove the .git directory after checkout.",
)
@click.option(
    "-s",
    "--storage",
    type=click.Choice([mode.value for mode in StorageMode]),
    default=None,
    help="Keep git objects on disk (fs) or in memory (mem). Default: fs.",
)
@click.option(
    "--list",
    "list_files",
    is_flag=True,
    default=False,
    help="Print the paths of the checked out files.",
)
@click.pass_context
def cli(
    ctx,
    args,
    directory,
    username,
    password,
    key_path,
    key_passphrase,
    rm_dotgit,
    storage,
    list_files,
):
    """Check out commit SHA of the git repository REPO.

    SHA must be the full 40 character commit hash.
    """
    ctx.ensure_object(dict)
    register_secret(password)
    register_secret(key_passphrase)

    options = Options()
    try:
        options.bind_args(list(args))
    except OptionsError as e:
        raise click.UsageError(str(e))

    # key configured in the config file only applies to ssh remotes without other auth
    if key_path is None and not (username or password):
        if classify_url(options.repo) == "ssh":
            key_path = get_default_key_path()

    flags = {
        "directory": directory or default_directory(options.repo),
        "username": username,
        "password": password,
        "key_path": key_path,
        "key_passphrase": key_passphrase,
        "rm_dotgit": get_default_rm_dotgit() if rm_dotgit is None else rm_dotgit,
    }

    try:
        options.bind_flags(flags)
        options.set_storage_mode(storage or get_default_storage_mode())
        options.validate()
    except OptionsError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if options.remove_dotgit and isinstance(options.get_storage(), MemoryStorage):
        logger.warning("--rm-dotgit has no effect with in-memory storage")

    try:
        result = checkout(options)
    except GitpinError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    click.echo(
        redact(
            f"Checked out {options.repo}@{result.sha[:7]} "
            f"({len(result.files)} files) to {result.location}"
        )
    )
    if list_files:
        for path in result.files:
            click.echo(path)


add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
