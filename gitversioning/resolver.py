"""
Ref resolution for gitversioning.

Selects the one versioning rule that applies to the current git
situation. Rules are tried in declared order and the first one that
matches wins:

- tag rules apply on a detached HEAD (or on branches too, if
  `consider_tags_on_branches` is set); HEAD tags are tried in
  ascending version order, so the lowest matching tag is selected
- branch rules apply on an attached HEAD
- without a matching rule the `rev` rule, if configured, binds the
  head commit as its own ref name
"""

import logging
from typing import Callable, Iterable, List, Optional

from .domain.refs import RefMatch, RefRule, RefType
from .exit_codes import ConfigError
from .situation import GitSituation
from .utils import version_sort_key

logger = logging.getLogger(__name__)


class _SortedTags:
    """Tags at HEAD in ascending version order, sorted on first use only."""

    def __init__(self, tags: Iterable[str]):
        self._tags = tags
        self._sorted: Optional[List[str]] = None

    def get(self) -> List[str]:
        if self._sorted is None:
            self._sorted = sorted(self._tags, key=version_sort_key)
        return self._sorted


def resolve(
    situation: GitSituation,
    rules: Iterable[RefRule],
    rev: Optional[RefRule] = None,
    consider_tags_on_branches: bool = False,
) -> Optional[RefMatch]:
    """
    Select the rule for `situation`.

    Args:
        situation: Current git situation
        rules: Ref rules in declared order
        rev: Fallback rule for the head commit
        consider_tags_on_branches: Let tag rules match on an attached HEAD

    Returns:
        The match, or None if versioning does not apply to the current ref

    Raises:
        ConfigError: If a rule has a type other than branch or tag
    """
    sorted_tags = _SortedTags(situation.tags)

    for rule in rules:
        if rule.type is RefType.TAG:
            if situation.detached or consider_tags_on_branches:
                for tag in sorted_tags.get():
                    if rule.matches(tag):
                        return RefMatch(situation.rev, tag, rule)
        elif rule.type is RefType.BRANCH:
            if not situation.detached:
                if rule.matches(situation.branch):
                    return RefMatch(situation.rev, situation.branch, rule)
        else:
            raise ConfigError(f"Unexpected ref type: {rule.type}")

    if rev is not None:
        return RefMatch(situation.rev, situation.rev, rev)

    return None


def log_no_match(situation: GitSituation, rules: Iterable[RefRule],
                 log: Callable[[str], None] = logger.warning) -> None:
    """Report why no rule matched: the current refs and every configured rule."""
    log("skip - no matching ref configuration and no rev configuration defined")
    log("git refs:")
    log(f"  branch: {situation.branch}")
    log(f"  tags: {list(situation.tags)}")
    log("defined ref configurations:")
    for rule in rules:
        log(f"  {rule.type.name:<6} - pattern: {rule.pattern_string}")
