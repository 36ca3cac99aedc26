"""
Git situation for gitversioning.

A GitSituation is an immutable snapshot of the repository state the
build runs on: head commit, branch, tags at HEAD, commit time and work
tree cleanliness. Branch and tags can be overridden to simulate another
checked out ref, either explicitly through command options or
implicitly from well known CI environment variables, since CI systems
usually check out a detached commit.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Optional, Pattern, Tuple

from .domain.refs import GitDescription, MATCH_ALL
from .exit_codes import ConfigError
from .infra.git_client import GitClient

logger = logging.getLogger(__name__)

OPTION_NAME_GIT_REF = "git.ref"
OPTION_NAME_GIT_TAG = "git.tag"
OPTION_NAME_GIT_BRANCH = "git.branch"

REFS_PREFIX = "refs/"
TAGS_PREFIX = "refs/tags/"

OptionGetter = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class GitSituation:
    """
    Repository state at HEAD.

    Attributes:
        root_directory: Work tree root
        rev: Head commit hash
        timestamp: Head commit time (epoch for an empty repository)
        branch: Checked out branch, None when detached
        tags: Tags at HEAD
        clean: True if there are no uncommitted changes
    """

    root_directory: Path
    rev: str
    timestamp: datetime
    branch: Optional[str]
    tags: Tuple[str, ...]
    clean: bool
    client: Optional[GitClient] = field(default=None, compare=False, repr=False)

    @property
    def detached(self) -> bool:
        return self.branch is None

    def description(self, tag_pattern: Pattern = MATCH_ALL) -> GitDescription:
        """Describe HEAD against tags fully matching `tag_pattern`."""
        if self.client is None:
            raise RuntimeError("git situation has no repository to describe")
        return self.client.describe(tag_pattern)

    def with_overrides(self, branch: Optional[str], tag: Optional[str]) -> 'GitSituation':
        """
        Copy of this situation with branch and tags replaced.

        Blank values mean "none". A branch must not be a tag ref and is
        stripped of `refs/` and `heads/` (which also keeps other refs such
        as `refs/pull/1000/head` usable). A tag must not be a non-tag ref
        and is stripped of `refs/tags/`.
        """
        if branch is not None and not branch.strip():
            branch = None
        if branch is not None:
            if branch.startswith(TAGS_PREFIX):
                raise ConfigError(f"invalid branch ref {branch}")
            branch = _strip_prefix(_strip_prefix(branch, REFS_PREFIX), "heads/")
        logger.debug(f"override git branch with: {branch}")

        if tag is not None and not tag.strip():
            tag = None
        if tag is not None:
            if tag.startswith(REFS_PREFIX) and not tag.startswith(TAGS_PREFIX):
                raise ConfigError(f"invalid tag ref {tag}")
            tag = _strip_prefix(tag, TAGS_PREFIX)
        logger.debug(f"override git tags with: {tag}")

        return GitSituation(
            root_directory=self.root_directory,
            rev=self.rev,
            timestamp=self.timestamp,
            branch=branch,
            tags=(tag,) if tag is not None else (),
            clean=self.clean,
            client=self.client,
        )


def build_git_situation(
    directory,
    get_option: Optional[OptionGetter] = None,
    environ: Optional[Mapping[str, str]] = None,
    client: Optional[GitClient] = None,
) -> GitSituation:
    """
    Read the git situation of the work tree containing `directory`.

    Args:
        directory: Execution root directory
        get_option: Lookup for command options (git.ref, git.branch, git.tag)
        environ: Environment used for CI detection (default: os.environ)
        client: Git client to use (default: one for `directory`)

    Raises:
        NotARepositoryError: If `directory` is not inside a git work tree
        ConfigError: If an override ref is malformed
    """
    client = client or GitClient(directory)
    environ = os.environ if environ is None else environ
    get_option = get_option or (lambda name: None)

    situation = GitSituation(
        root_directory=client.root_directory(),
        rev=client.head_commit(),
        timestamp=client.head_timestamp(),
        branch=client.current_branch(),
        tags=tuple(client.head_tags()),
        clean=client.is_clean(),
        client=client,
    )

    branch, tag = resolve_ref_overrides(get_option, environ)
    if branch is not None or tag is not None:
        situation = situation.with_overrides(branch, tag)
    return situation


def resolve_ref_overrides(get_option: OptionGetter, environ: Mapping[str, str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Determine branch and tag overrides.

    Priority: git.branch/git.tag options > git.ref option > CI environment
    (GitHub Actions, GitLab CI, CircleCI, Jenkins).

    Returns:
        Tuple of (branch, tag), both None when nothing is overridden
    """
    override_branch = get_option(OPTION_NAME_GIT_BRANCH)
    override_tag = get_option(OPTION_NAME_GIT_TAG)

    if override_branch is None and override_tag is None:
        provided_ref = get_option(OPTION_NAME_GIT_REF)
        if provided_ref is not None:
            if not provided_ref.startswith(REFS_PREFIX):
                raise ConfigError(f"invalid provided ref {provided_ref} - needs to start with {REFS_PREFIX}")
            if provided_ref.startswith(TAGS_PREFIX):
                override_tag = provided_ref
            else:
                override_branch = provided_ref

    if override_branch is None and override_tag is None:
        override_branch, override_tag = _ci_overrides(environ)

    return override_branch, override_tag


def _ci_overrides(environ: Mapping[str, str]) -> Tuple[Optional[str], Optional[str]]:
    if environ.get("GITHUB_ACTIONS") == "true":
        logger.info("gather git situation from GitHub Actions environment variable: GITHUB_REF")
        github_ref = environ.get("GITHUB_REF")
        logger.debug(f"  GITHUB_REF: {github_ref}")
        if github_ref is not None and github_ref.startswith(REFS_PREFIX):
            if github_ref.startswith(TAGS_PREFIX):
                return None, github_ref
            return github_ref, None

    if environ.get("GITLAB_CI") == "true":
        logger.info("gather git situation from GitLab CI environment variables: CI_COMMIT_BRANCH and CI_COMMIT_TAG")
        commit_branch = environ.get("CI_COMMIT_BRANCH")
        commit_tag = environ.get("CI_COMMIT_TAG")
        logger.debug(f"  CI_COMMIT_BRANCH: {commit_branch}")
        logger.debug(f"  CI_COMMIT_TAG: {commit_tag}")
        return commit_branch, commit_tag

    if environ.get("CIRCLECI") == "true":
        logger.info("gather git situation from Circle CI environment variables: CIRCLE_BRANCH and CIRCLE_TAG")
        commit_branch = environ.get("CIRCLE_BRANCH")
        commit_tag = environ.get("CIRCLE_TAG")
        logger.debug(f"  CIRCLE_BRANCH: {commit_branch}")
        logger.debug(f"  CIRCLE_TAG: {commit_tag}")
        return commit_branch, commit_tag

    jenkins_home = environ.get("JENKINS_HOME")
    if jenkins_home is not None and jenkins_home.strip():
        logger.info("gather git situation from jenkins environment variables: BRANCH_NAME and TAG_NAME")
        branch_name = environ.get("BRANCH_NAME")
        tag_name = environ.get("TAG_NAME")
        logger.debug(f"  BRANCH_NAME: {branch_name}")
        logger.debug(f"  TAG_NAME: {tag_name}")
        if branch_name is not None and branch_name == tag_name:
            return None, tag_name
        return branch_name, tag_name

    return None, None


def _strip_prefix(value: str, prefix: str) -> str:
    return value[len(prefix):] if value.startswith(prefix) else value
