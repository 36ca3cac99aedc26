"""
Ref configuration and match domain objects for gitversioning.

A RefRule describes how to version the build when the current git ref
(branch or tag) matches its pattern. Rules are loaded once, kept in the
declared order and never mutated afterwards. A RefMatch binds the one
winning rule to the commit and ref name that selected it.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Pattern

MATCH_ALL = re.compile(r".*")


class RefType(Enum):
    """Kind of git ref a rule applies to."""
    BRANCH = "branch"
    TAG = "tag"
    COMMIT = "commit"


@dataclass(frozen=True)
class RefRule:
    """
    Versioning rule for one kind of ref.

    Attributes:
        type: Ref kind the rule applies to
        pattern: Regex the full ref name must match; None matches any ref
        version: Version format, None leaves versions untouched
        properties: Property name -> property format, in declared order
        describe_tag_pattern: Regex selecting tags for describe placeholders
        update_pom: Whether the original descriptor file is overwritten
    """

    type: RefType
    pattern: Optional[Pattern] = None
    version: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    describe_tag_pattern: Pattern = MATCH_ALL
    update_pom: Optional[bool] = None

    def matches(self, ref_name: str) -> bool:
        return self.pattern is None or self.pattern.fullmatch(ref_name) is not None

    @property
    def pattern_string(self) -> Optional[str]:
        return self.pattern.pattern if self.pattern is not None else None


@dataclass(frozen=True)
class RefMatch:
    """The rule selected for this build and the ref that selected it."""

    commit: str
    ref_name: str
    rule: RefRule

    def __post_init__(self):
        for name in ('commit', 'ref_name', 'rule'):
            if getattr(self, name) is None:
                raise TypeError(f"RefMatch.{name} must not be None")

    @property
    def ref_type(self) -> RefType:
        return self.rule.type


@dataclass(frozen=True)
class GitDescription:
    """Nearest matching tag of a commit and the commit distance to it."""

    commit: str
    tag: str
    distance: int

    def __str__(self) -> str:
        return f"{self.tag}-{self.distance}-g{self.commit[:7]}"
