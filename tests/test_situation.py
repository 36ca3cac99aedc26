"""
Tests for the git situation and ref overrides.
"""

import pytest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

from gitversioning.exit_codes import ConfigError
from gitversioning.situation import GitSituation, build_git_situation, resolve_ref_overrides

COMMIT = "abcdef1234567890abcdef1234567890abcdef12"


def _situation(branch="main", tags=()):
    return GitSituation(
        root_directory=Path("/repo"),
        rev=COMMIT,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        branch=branch,
        tags=tuple(tags),
        clean=True,
    )


def _options(**values):
    """Option getter for dotted names given as keyword arguments (git_branch -> git.branch)."""
    options = {name.replace("_", "."): value for name, value in values.items()}
    return options.get


class TestWithOverrides:
    """Test branch/tag overrides of a situation."""

    def test_branch_prefixes_are_stripped(self):
        assert _situation().with_overrides("refs/heads/feature/x", None).branch == "feature/x"
        assert _situation().with_overrides("heads/dev", None).branch == "dev"

    def test_other_refs_keep_their_path(self):
        assert _situation().with_overrides("refs/pull/1000/head", None).branch == "pull/1000/head"

    def test_branch_must_not_be_a_tag_ref(self):
        with pytest.raises(ConfigError):
            _situation().with_overrides("refs/tags/v1.0.0", None)

    def test_tag_prefix_is_stripped(self):
        situation = _situation(tags=["old"]).with_overrides(None, "refs/tags/v1.0.0")
        assert situation.tags == ("v1.0.0",)
        assert situation.detached

    def test_tag_must_not_be_another_ref(self):
        with pytest.raises(ConfigError):
            _situation().with_overrides(None, "refs/heads/main")

    def test_blank_values_mean_none(self):
        situation = _situation(tags=["v1"]).with_overrides("  ", "")
        assert situation.branch is None
        assert situation.tags == ()

    def test_other_fields_are_kept(self):
        original = _situation()
        situation = original.with_overrides("dev", None)
        assert situation.rev == original.rev
        assert situation.timestamp == original.timestamp
        assert situation.clean == original.clean


class TestResolveRefOverrides:
    """Test override precedence and CI detection."""

    def test_nothing_overridden(self):
        assert resolve_ref_overrides(_options(), {}) == (None, None)

    def test_branch_and_tag_options(self):
        assert resolve_ref_overrides(_options(git_branch="dev"), {}) == ("dev", None)
        assert resolve_ref_overrides(_options(git_tag="v1"), {}) == (None, "v1")

    def test_git_ref_option(self):
        assert resolve_ref_overrides(_options(git_ref="refs/heads/dev"), {}) == ("refs/heads/dev", None)
        assert resolve_ref_overrides(_options(git_ref="refs/tags/v1"), {}) == (None, "refs/tags/v1")

    def test_git_ref_option_needs_refs_prefix(self):
        with pytest.raises(ConfigError):
            resolve_ref_overrides(_options(git_ref="dev"), {})

    def test_branch_option_wins_over_git_ref(self):
        options = _options(git_branch="dev", git_ref="refs/tags/v1")
        assert resolve_ref_overrides(options, {}) == ("dev", None)

    def test_options_win_over_ci(self):
        environ = {"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/heads/ci"}
        assert resolve_ref_overrides(_options(git_branch="dev"), environ) == ("dev", None)

    def test_github_actions(self):
        environ = {"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/tags/v2.0.0"}
        assert resolve_ref_overrides(_options(), environ) == (None, "refs/tags/v2.0.0")
        environ = {"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/pull/7/merge"}
        assert resolve_ref_overrides(_options(), environ) == ("refs/pull/7/merge", None)

    def test_github_actions_without_ref_falls_through(self):
        """Without a usable GITHUB_REF the other CI providers are still consulted."""
        environ = {"GITHUB_ACTIONS": "true", "GITLAB_CI": "true", "CI_COMMIT_BRANCH": "main"}
        assert resolve_ref_overrides(_options(), environ) == ("main", None)
        environ = {"GITHUB_ACTIONS": "true", "GITHUB_REF": "main",
                   "JENKINS_HOME": "/var/jenkins", "BRANCH_NAME": "v1", "TAG_NAME": "v1"}
        assert resolve_ref_overrides(_options(), environ) == (None, "v1")

    def test_gitlab_ci(self):
        environ = {"GITLAB_CI": "true", "CI_COMMIT_BRANCH": "main"}
        assert resolve_ref_overrides(_options(), environ) == ("main", None)
        environ = {"GITLAB_CI": "true", "CI_COMMIT_TAG": "v1"}
        assert resolve_ref_overrides(_options(), environ) == (None, "v1")

    def test_circleci(self):
        environ = {"CIRCLECI": "true", "CIRCLE_BRANCH": "main"}
        assert resolve_ref_overrides(_options(), environ) == ("main", None)

    def test_jenkins_tag_build(self):
        environ = {"JENKINS_HOME": "/var/jenkins", "BRANCH_NAME": "v1", "TAG_NAME": "v1"}
        assert resolve_ref_overrides(_options(), environ) == (None, "v1")

    def test_jenkins_branch_build(self):
        environ = {"JENKINS_HOME": "/var/jenkins", "BRANCH_NAME": "main"}
        assert resolve_ref_overrides(_options(), environ) == ("main", None)


class TestBuildGitSituation:
    """Test reading the situation through a git client."""

    def _client(self):
        client = MagicMock()
        client.root_directory.return_value = Path("/repo")
        client.head_commit.return_value = COMMIT
        client.head_timestamp.return_value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        client.current_branch.return_value = "main"
        client.head_tags.return_value = ["v1.0.0"]
        client.is_clean.return_value = False
        return client

    def test_reads_repository_state(self):
        situation = build_git_situation("/repo", environ={}, client=self._client())
        assert situation.root_directory == Path("/repo")
        assert situation.rev == COMMIT
        assert situation.branch == "main"
        assert situation.tags == ("v1.0.0",)
        assert not situation.clean
        assert not situation.detached

    def test_applies_overrides(self):
        situation = build_git_situation("/repo", _options(git_tag="v2.0.0"), environ={}, client=self._client())
        assert situation.branch is None
        assert situation.tags == ("v2.0.0",)

    def test_description_uses_client(self):
        client = self._client()
        situation = build_git_situation("/repo", environ={}, client=client)
        situation.description()
        client.describe.assert_called_once()
