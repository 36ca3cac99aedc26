"""
Domain layer for gitversioning.

Contains pure domain objects with no I/O or side effects:
- GAV: Group/artifact/version identity of a project or reference
- RefRule / RefMatch: Versioning rules and the rule selected for a build
- GitDescription: Nearest tag and distance of a commit
- Model and friends: The project descriptor object model

Identities and rules are immutable; descriptor models are mutated in
place while a build is versioned.
"""

from .gav import GAV, WILDCARD_VERSION
from .refs import RefType, RefRule, RefMatch, GitDescription, MATCH_ALL
from .model import (
    Model,
    ModelBase,
    Parent,
    Dependency,
    Plugin,
    ReportPlugin,
    Build,
    Reporting,
    Profile,
)

__all__ = [
    'GAV',
    'WILDCARD_VERSION',
    'RefType',
    'RefRule',
    'RefMatch',
    'GitDescription',
    'MATCH_ALL',
    'Model',
    'ModelBase',
    'Parent',
    'Dependency',
    'Plugin',
    'ReportPlugin',
    'Build',
    'Reporting',
    'Profile',
]
