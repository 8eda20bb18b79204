"""Tests for fetching and checking out a single commit."""

from unittest.mock import MagicMock, patch

import pytest
from dulwich.client import HTTPUnauthorized
from dulwich.errors import HangupException
from dulwich.repo import MemoryRepo, Repo

from gitpin.exceptions import AuthError, CheckoutError, CommitNotFoundError
from gitpin.git.checkout import checkout, fetch_commit, materialize
from gitpin.git.storage import MemoryWorktree
from gitpin.options import Options, StorageMode

MISSING_SHA = "f" * 40


def _options(repo_url, sha, directory, mode=StorageMode.FS, remove_dotgit=False):
    options = Options(
        repo=repo_url, sha=sha, directory=str(directory), remove_dotgit=remove_dotgit
    )
    options.set_storage_mode(mode)
    options.validate()
    return options


class TestCheckoutToDisk:
    @pytest.mark.integration
    def test_checkout_first_commit(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        options = _options(source_repo.url, source_repo.first, target)

        result = checkout(options)

        assert result.sha == source_repo.first
        assert result.files == ["README.md", "src/main.py"]
        assert result.location == str(target)
        assert (target / "README.md").read_text() == "hello\n"
        assert not (target / "CHANGELOG.md").exists()
        with Repo(str(target)) as repo:
            assert repo.head().decode("ascii") == source_repo.first

    @pytest.mark.integration
    def test_checkout_later_commit(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        result = checkout(_options(source_repo.url, source_repo.second, target))

        assert result.files == ["CHANGELOG.md", "README.md", "src/main.py"]

    @pytest.mark.integration
    def test_uppercase_sha(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        result = checkout(_options(source_repo.url, source_repo.first.upper(), target))

        assert result.sha == source_repo.first

    @pytest.mark.integration
    def test_remove_dotgit(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        options = _options(
            source_repo.url, source_repo.first, target, remove_dotgit=True
        )

        result = checkout(options)

        assert result.removed_dotgit is True
        assert not (target / ".git").exists()
        assert (target / "src" / "main.py").exists()

    @pytest.mark.integration
    def test_second_checkout_reuses_repository(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        checkout(_options(source_repo.url, source_repo.second, target))

        result = checkout(_options(source_repo.url, source_repo.first, target))

        assert "README.md" in result.files
        with Repo(str(target)) as repo:
            assert repo.head().decode("ascii") == source_repo.first

    @pytest.mark.integration
    def test_plain_path_url(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        result = checkout(
            _options(str(source_repo.path), source_repo.first, target)
        )
        assert result.files == ["README.md", "src/main.py"]


    @pytest.mark.short
    def test_missing_commit_leaves_no_repository(self, tmp_path):
        target = tmp_path / "checkout"
        options = _options("https://example.com/repo.git", MISSING_SHA, target)

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(MagicMock(), "/repo.git"),
        ):
            with pytest.raises(CommitNotFoundError):
                checkout(options)

        assert not target.exists()

    @pytest.mark.integration
    def test_missing_commit_keeps_reused_repository(self, source_repo, tmp_path):
        target = tmp_path / "checkout"
        checkout(_options(source_repo.url, source_repo.first, target))

        options = _options("https://example.com/repo.git", MISSING_SHA, target)

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(MagicMock(), "/repo.git"),
        ):
            with pytest.raises(CommitNotFoundError):
                checkout(options)

        assert (target / ".git").is_dir()
        assert (target / "README.md").exists()

class TestCheckoutToMemory:
    @pytest.mark.integration
    def test_checkout_into_memory(self, source_repo, tmp_path):
        target = tmp_path / "unused"
        options = _options(
            source_repo.url, source_repo.second, target, mode=StorageMode.MEM
        )

        result = checkout(options)

        assert isinstance(result.worktree, MemoryWorktree)
        assert result.location == "memory"
        assert result.files == ["CHANGELOG.md", "README.md", "src/main.py"]
        assert result.worktree.read_file("src/main.py") == b"print('hello')\n"
        assert not target.exists()

    @pytest.mark.integration
    def test_remove_dotgit_is_noop(self, source_repo, tmp_path):
        options = _options(
            source_repo.url,
            source_repo.first,
            tmp_path / "unused",
            mode=StorageMode.MEM,
            remove_dotgit=True,
        )

        result = checkout(options)

        assert result.removed_dotgit is False
        assert len(result.files) == 2


class TestFetchCommit:
    @pytest.mark.short
    def test_commit_missing_on_remote(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        client = MagicMock()

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(client, "/repo.git"),
        ):
            with pytest.raises(CommitNotFoundError, match=MISSING_SHA):
                fetch_commit(options, MemoryRepo())

        client.fetch.assert_called_once()
        assert client.fetch.call_args.kwargs["depth"] == 1

    @pytest.mark.short
    def test_falls_back_to_full_fetch_when_refused(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        client = MagicMock()
        client.fetch.side_effect = [HangupException(), None]

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(client, "/repo.git"),
        ):
            with pytest.raises(CommitNotFoundError):
                fetch_commit(options, MemoryRepo())

        assert client.fetch.call_count == 2
        assert "determine_wants" not in client.fetch.call_args.kwargs

    @pytest.mark.short
    def test_unreachable_remote(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        client = MagicMock()
        client.fetch.side_effect = OSError("connection refused")

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(client, "/repo.git"),
        ):
            with pytest.raises(CheckoutError, match="connection refused"):
                fetch_commit(options, MemoryRepo())

    @pytest.mark.short
    def test_basic_auth_is_passed_to_transport(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        options.bind_flags(
            {
                "directory": str(tmp_path),
                "username": "token",
                "password": "ghp_abc",
                "key_path": None,
                "key_passphrase": "",
                "rm_dotgit": False,
            }
        )

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(MagicMock(), "/repo.git"),
        ) as transport:
            with pytest.raises(CommitNotFoundError):
                fetch_commit(options, MemoryRepo())

        transport.assert_called_once_with(
            "https://example.com/repo.git", username="token", password="ghp_abc"
        )

    @pytest.mark.short
    def test_rejected_credentials(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        client = MagicMock()
        client.fetch.side_effect = HTTPUnauthorized(
            "Basic realm=example", "https://example.com/repo.git"
        )

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(client, "/repo.git"),
        ):
            with pytest.raises(AuthError, match="Authentication failed"):
                fetch_commit(options, MemoryRepo())

    @pytest.mark.short
    def test_rejected_credentials_after_fallback(self, tmp_path):
        options = _options("https://example.com/repo.git", MISSING_SHA, tmp_path)
        client = MagicMock()
        client.fetch.side_effect = [
            HangupException(),
            HTTPUnauthorized("Basic", "https://example.com/repo.git"),
        ]

        with patch(
            "gitpin.git.auth.get_transport_and_path",
            return_value=(client, "/repo.git"),
        ):
            with pytest.raises(AuthError):
                fetch_commit(options, MemoryRepo())

    @pytest.mark.integration
    def test_skips_fetch_when_commit_present(self, source_repo, tmp_path):
        options = _options(source_repo.url, source_repo.first, tmp_path)

        with Repo(str(source_repo.path)) as repo:
            with patch("gitpin.git.auth.get_transport_and_path") as transport:
                fetch_commit(options, repo)

        transport.assert_not_called()


@pytest.mark.integration
def test_materialize_rejects_non_commit(source_repo):
    with Repo(str(source_repo.path)) as repo:
        tree_id = repo[source_repo.first.encode("ascii")].tree.decode("ascii")
        with pytest.raises(CheckoutError, match="not a commit"):
            materialize(repo, tree_id, MemoryWorktree())
