"""
Project descriptor object model for gitversioning.

Mirrors the parts of a Maven project descriptor (pom.xml) that carry
versions: the project itself, its parent reference, dependencies,
plugins, report plugins, properties, modules and profiles. Unlike the
immutable domain values these objects are mutated in place while a
build is versioned.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_DEPENDENCY_TYPE = "jar"
DEFAULT_PLUGIN_GROUP_ID = "org.apache.maven.plugins"
DEFAULT_PARENT_RELATIVE_PATH = "../pom.xml"


@dataclass
class Parent:
    """Reference to a parent descriptor."""
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    relative_path: str = DEFAULT_PARENT_RELATIVE_PATH


@dataclass
class Dependency:
    """A dependency entry (also used for dependency management)."""
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    type: str = DEFAULT_DEPENDENCY_TYPE
    classifier: Optional[str] = None
    scope: Optional[str] = None

    @property
    def management_key(self) -> str:
        key = f"{self.group_id or ''}:{self.artifact_id or ''}:{self.type}"
        if self.classifier is not None:
            key += f":{self.classifier}"
        return key


@dataclass
class Plugin:
    """A build plugin entry."""
    group_id: str = DEFAULT_PLUGIN_GROUP_ID
    artifact_id: Optional[str] = None
    version: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id or ''}"


@dataclass
class ReportPlugin(Plugin):
    """A reporting plugin entry."""


@dataclass
class Build:
    """Build section: plugins and optional plugin management."""
    plugins: List[Plugin] = field(default_factory=list)
    plugin_management: Optional[List[Plugin]] = None


@dataclass
class Reporting:
    """Reporting section."""
    plugins: List[ReportPlugin] = field(default_factory=list)


@dataclass
class ModelBase:
    """Sections shared by the project itself and its profiles."""
    modules: List[str] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    dependency_management: Optional[List[Dependency]] = None
    build: Optional[Build] = None
    reporting: Optional[Reporting] = None

    def add_property(self, name: str, value: str) -> None:
        self.properties[name] = value


@dataclass
class Profile(ModelBase):
    """A profile section of a descriptor."""
    id: Optional[str] = None


@dataclass
class Model(ModelBase):
    """
    A project descriptor.

    Attributes:
        group_id: Own group, None when inherited from the parent
        artifact_id: Artifact identifier
        version: Own version, None when inherited from the parent
        parent: Parent reference if declared
        profiles: Profile sections in declared order
        pom_file: Descriptor file the model was read from
    """
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    parent: Optional[Parent] = None
    profiles: List[Profile] = field(default_factory=list)
    pom_file: Optional[Path] = None

    @property
    def project_directory(self) -> Optional[Path]:
        return self.pom_file.parent if self.pom_file is not None else None

    def clone(self) -> 'Model':
        return copy.deepcopy(self)
