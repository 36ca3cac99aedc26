"""
Project identity (group, artifact, version) for gitversioning.

A GAV identifies a project descriptor or a reference to one (parent,
dependency, plugin). Identities are immutable values compared
structurally; the wildcard version "*" stands for any version of the
same group and artifact.
"""

from dataclasses import dataclass
from typing import Optional

WILDCARD_VERSION = "*"


@dataclass(frozen=True)
class GAV:
    """
    Group/artifact/version identity.

    Attributes:
        group_id: Group identifier (may be None for incomplete references)
        artifact_id: Artifact identifier
        version: Version string, None when inherited or unmanaged
    """

    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str] = None

    @classmethod
    def of(cls, element) -> 'GAV':
        """
        Build the identity of a model, parent, dependency or plugin.

        A project model without its own group or version inherits them
        from its parent reference.
        """
        group_id = element.group_id
        version = element.version
        parent = getattr(element, 'parent', None)
        if parent is not None:
            if group_id is None:
                group_id = parent.group_id
            if version is None:
                version = parent.version
        return cls(group_id, element.artifact_id, version)

    def wildcard(self) -> 'GAV':
        """Same group and artifact, any version."""
        return GAV(self.group_id, self.artifact_id, WILDCARD_VERSION)

    @property
    def project_id(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"
