"""Tests for mirror/refresher.py module.

Most tests replace the git wrappers with an in-memory fake upstream.
One test drives a real git repository when git is installed.
"""

import json
import shutil
import subprocess
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from brewtroller_buildbot.config import Settings
from brewtroller_buildbot.mirror import git
from brewtroller_buildbot.mirror.refresher import (
    MirrorBootstrapError,
    RepositoryRefresher,
)
from brewtroller_buildbot.options.cache import OptionsCache

MISSING = object()


class FakeUpstream:
    """In-memory stand-in for the git wrappers.

    ``tags`` maps tag name to the options file content at that tag
    (a string, or MISSING for no file).
    """

    def __init__(self, tags=None, clone_failures=0):
        self.tags = dict(tags or {})
        self.clone_failures = clone_failures
        self.local_tags: list[str] = []
        self.calls: list[tuple] = []
        self.pull_fails = False
        self.bad_checkouts: set[str] = set()

    def clone(self, source, dest, timeout=None):
        self.calls.append(("clone", str(source)))
        if self.clone_failures:
            self.clone_failures -= 1
            raise git.GitError("git clone failed with exit code 128", output="fatal")
        Path(dest).mkdir(parents=True)
        self.local_tags = list(self.tags)

    def current_branch(self, repo, timeout=None):
        return "master"

    def delete_all_tags(self, repo, timeout=None):
        self.calls.append(("delete_all_tags",))
        count = len(self.local_tags)
        self.local_tags = []
        return count

    def pull(self, repo, timeout=None):
        self.calls.append(("pull",))
        if self.pull_fails:
            raise git.GitError("git pull failed with exit code 1", output="offline")
        self.local_tags = list(self.tags)

    def list_tags(self, repo, pattern=None, timeout=None):
        self.calls.append(("list_tags", pattern))
        return list(self.local_tags) + [""]

    def checkout(self, repo, revision, timeout=None):
        self.calls.append(("checkout", revision))
        if revision in self.bad_checkouts:
            raise git.GitError("git checkout failed with exit code 1")
        options = Path(repo) / "options.json"
        if options.exists():
            options.unlink()
        content = self.tags.get(revision, MISSING)
        if content is not MISSING:
            options.write_text(content, encoding="utf-8")

    def install(self):
        return patch.multiple(
            "brewtroller_buildbot.mirror.git",
            clone=self.clone,
            current_branch=self.current_branch,
            delete_all_tags=self.delete_all_tags,
            pull=self.pull,
            list_tags=self.list_tags,
            checkout=self.checkout,
        )


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing the mirror into tmp_path."""
    return Settings(
        mirror_dir=tmp_path / "state" / "BrewTroller",
        git_url="http://example.com/brewtroller",
        poll_period=0.05,
        bootstrap_attempts=3,
        bootstrap_backoff=0,
    )


@pytest.fixture
def cache() -> OptionsCache:
    return OptionsCache()


class TestBootstrap:
    """Tests for RepositoryRefresher.bootstrap."""

    def test_clones_into_mirror_dir(self, settings, cache):
        """Should clone the configured URL into the mirror directory."""
        upstream = FakeUpstream()
        with upstream.install():
            RepositoryRefresher(settings, cache).bootstrap()
        assert settings.mirror_dir.is_dir()
        assert ("clone", settings.git_url) in upstream.calls

    def test_removes_stale_mirror(self, settings, cache):
        """Should delete a leftover mirror before cloning."""
        settings.mirror_dir.mkdir(parents=True)
        stale = settings.mirror_dir / "stale.txt"
        stale.write_text("old")
        with FakeUpstream().install():
            RepositoryRefresher(settings, cache).bootstrap()
        assert not stale.exists()

    def test_retries_then_succeeds(self, settings, cache):
        """Should retry failed clones within the attempt budget."""
        upstream = FakeUpstream(clone_failures=2)
        with upstream.install():
            RepositoryRefresher(settings, cache).bootstrap()
        assert [c for c in upstream.calls if c[0] == "clone"] == [
            ("clone", settings.git_url)
        ] * 3

    def test_gives_up_after_attempts(self, settings, cache):
        """Should raise MirrorBootstrapError once every attempt fails."""
        upstream = FakeUpstream(clone_failures=10)
        with upstream.install():
            with pytest.raises(MirrorBootstrapError):
                RepositoryRefresher(settings, cache).bootstrap()
        assert len([c for c in upstream.calls if c[0] == "clone"]) == 3


class TestRefreshOnce:
    """Tests for RepositoryRefresher.refresh_once."""

    def test_builds_manifest_from_valid_tags_only(self, settings, cache):
        """Tags with missing or invalid options files should be excluded."""
        upstream = FakeUpstream(
            tags={
                "v1.0.0": json.dumps([{"name": "TEMP_UNIT"}]),
                "v1.1.0": MISSING,
                "v1.2.0": "{not json",
                "v1.3.0": json.dumps({"name": "not-an-array"}),
                "v2.0.0": json.dumps([]),
            }
        )
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            manifest = refresher.refresh_once()

        assert manifest == {"v1.0.0": [{"name": "TEMP_UNIT"}], "v2.0.0": []}
        assert cache.snapshot() == manifest
        assert refresher.last_refresh is not None

    def test_ignores_non_version_tags(self, settings, cache):
        """Tags not shaped like v<major>.<minor>.<patch> should be skipped."""
        upstream = FakeUpstream(
            tags={
                "v1.0.0": "[]",
                "v1.0.0-rc1": "[]",
                "v1.0": "[]",
            }
        )
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()

        assert cache.versions() == ["v1.0.0"]

    def test_deletes_tags_before_pull(self, settings, cache):
        """Should clear local tags, then pull, then list tags."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            upstream.calls.clear()
            refresher.refresh_once()

        names = [c[0] for c in upstream.calls]
        assert names[:3] == ["delete_all_tags", "pull", "list_tags"]

    def test_returns_to_branch_after_tag_checkouts(self, settings, cache):
        """Should check the branch out again so the next pull works."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]", "v1.1.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()

        checkouts = [c[1] for c in upstream.calls if c[0] == "checkout"]
        assert checkouts == ["v1.0.0", "v1.1.0", "master"]

    def test_removed_upstream_tags_disappear(self, settings, cache):
        """A tag deleted upstream should leave the cache on the next cycle."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]", "v1.1.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()
            del upstream.tags["v1.0.0"]
            refresher.refresh_once()

        assert cache.versions() == ["v1.1.0"]

    def test_failed_checkout_excludes_only_that_tag(self, settings, cache):
        """A tag that cannot be checked out should not affect the others."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]", "v1.1.0": "[]"})
        upstream.bad_checkouts.add("v1.0.0")
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()

        assert cache.versions() == ["v1.1.0"]

    def test_failed_pull_still_replaces_cache(self, settings, cache):
        """A failed pull should leave an empty but consistent cache."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()
            assert cache.contains("v1.0.0")
            upstream.pull_fails = True
            refresher.refresh_once()

        assert cache.snapshot() == {}


class TestBackgroundLoop:
    """Tests for start/stop of the background refresher."""

    def test_refreshes_until_stopped(self, settings, cache):
        """Should refresh repeatedly and stop on request."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.start()
            deadline = time.monotonic() + 5
            while (
                len([c for c in upstream.calls if c[0] == "pull"]) < 2
                and time.monotonic() < deadline
            ):
                time.sleep(0.01)
            refresher.stop(timeout=5)

        assert not refresher.is_running
        assert len([c for c in upstream.calls if c[0] == "pull"]) >= 2
        assert cache.contains("v1.0.0")

    def test_failed_cycle_keeps_previous_cache(self, settings, cache):
        """An exception in one cycle should be recorded, not kill the loop."""
        upstream = FakeUpstream(tags={"v1.0.0": "[]"})
        with upstream.install():
            refresher = RepositoryRefresher(settings, cache)
            refresher.bootstrap()
            refresher.refresh_once()

            def broken_list_tags(repo, pattern=None, timeout=None):
                raise git.GitError("git tag failed with exit code 1")

            with patch("brewtroller_buildbot.mirror.git.list_tags", broken_list_tags):
                refresher.start()
                deadline = time.monotonic() + 5
                while refresher.last_error is None and time.monotonic() < deadline:
                    time.sleep(0.01)
                assert refresher.is_running
                refresher.stop(timeout=5)

        assert refresher.last_error is not None
        assert cache.contains("v1.0.0")


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestRealRepository:
    """Refresh against a real local git repository."""

    def test_refresh_from_local_upstream(self, tmp_path):
        """Should discover tags and their options files end to end."""
        upstream = tmp_path / "upstream"
        upstream.mkdir()
        _git(upstream, "init", "--quiet")
        (upstream / "README").write_text("BrewTroller\n")
        _git(upstream, "add", "README")
        _git(upstream, "commit", "--quiet", "-m", "initial")
        _git(upstream, "tag", "v0.9.0")

        (upstream / "options.json").write_text(json.dumps([{"name": "TEMP_UNIT"}]))
        _git(upstream, "add", "options.json")
        _git(upstream, "commit", "--quiet", "-m", "add options")
        _git(upstream, "tag", "v1.0.0")
        _git(upstream, "tag", "not-a-version")

        settings = Settings(
            mirror_dir=tmp_path / "state" / "BrewTroller",
            git_url=str(upstream),
            bootstrap_attempts=1,
        )
        cache = OptionsCache()
        refresher = RepositoryRefresher(settings, cache)
        refresher.bootstrap()
        refresher.refresh_once()

        assert cache.snapshot() == {"v1.0.0": [{"name": "TEMP_UNIT"}]}

        # New upstream tag shows up on the next cycle
        (upstream / "options.json").write_text(
            json.dumps([{"name": "TEMP_UNIT"}, {"name": "HLT"}])
        )
        _git(upstream, "commit", "--quiet", "-am", "more options")
        _git(upstream, "tag", "v1.1.0")
        refresher.refresh_once()

        assert cache.versions() == ["v1.0.0", "v1.1.0"]
        assert len(cache.snapshot()["v1.1.0"]) == 2
