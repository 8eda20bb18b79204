import io

import pytest
import logging

from pathlib import Path
from dulwich import porcelain
from dulwich.repo import Repo

AUTHOR = b"Test Author <author@example.com>"


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("gitpin")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream  # Yield the stream to the test function

    # Cleanup after the test
    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point gitpin at an empty config file so user settings don't leak into tests."""
    config_file = tmp_path / "gitpin.cfg"
    monkeypatch.setenv("GITPIN_CONFIG", str(config_file))
    for var in ("GITPIN_USERNAME", "GITPIN_PASSWORD", "GITPIN_KEY_PASSPHRASE"):
        monkeypatch.delenv(var, raising=False)
    return config_file


# git fixtures


def _commit_files(repo_path: Path, files: dict, message: bytes) -> str:
    for name, content in files.items():
        target = repo_path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    with Repo(str(repo_path)) as repo:
        porcelain.add(repo, paths=[str(repo_path / name) for name in files])
        sha = porcelain.commit(repo, message=message, author=AUTHOR, committer=AUTHOR)
    return sha.decode("ascii")


class SourceRepo:
    """A local repository with two commits to check out from."""

    def __init__(self, path: Path):
        self.path = path
        Repo.init(str(path), mkdir=True).close()
        self.first = _commit_files(
            path,
            {"README.md": "hello\n", "src/main.py": "print('hello')\n"},
            b"first commit",
        )
        self.second = _commit_files(
            path, {"CHANGELOG.md": "## 0.2.0\n"}, b"second commit"
        )

    @property
    def url(self) -> str:
        return self.path.resolve().as_uri()


@pytest.fixture
def source_repo(tmp_path) -> SourceRepo:
    return SourceRepo(tmp_path / "source")
