"""
Descriptor model patching for gitversioning.

Applies the matched rule to a project model in place:

1. project version and, if the parent is related, the parent version
2. versions of related dependencies, plugins and report plugins in the
   main sections, the management sections and every profile
3. property values that have a configured format
4. build metadata properties (git.commit, git.ref, ...)

Each version is rendered with the identity of the element it belongs
to, so `${version}` is the referenced project's original version.
"""

import logging
from typing import Iterable, List, Mapping, Optional

from .domain.gav import GAV
from .domain.model import Model, ModelBase, Profile
from .domain.refs import RefRule
from .placeholders import PlaceholderMap, project_placeholders, render_property, render_version
from .related import RelatedProjects

logger = logging.getLogger(__name__)


class ModelPatcher:
    """
    Rewrites versions and properties of related projects.

    Example:
        patcher = ModelPatcher(related, placeholders, git_properties)
        patcher.apply(model, match.rule)
    """

    def __init__(self, related: RelatedProjects, placeholders: PlaceholderMap,
                 git_properties: Optional[Mapping[str, str]] = None):
        self.related = related
        self.placeholders = placeholders
        self.git_properties = dict(git_properties or {})

    def apply(self, model: Model, rule: RefRule) -> None:
        original_gav = GAV.of(model)

        version_format = rule.version
        if version_format is not None:
            self.update_parent_version(model, version_format)
            self.update_version(model, version_format)
            logger.info(f"project version: {GAV.of(model).version}")

            for section in _sections(model):
                self.update_dependency_versions(section, version_format)
                self.update_plugin_versions(section, version_format)

        if rule.properties:
            for section in _sections(model):
                self.update_property_values(section, rule.properties, original_gav)

        self.add_git_properties(model)

    def update_parent_version(self, model: Model, version_format: str) -> None:
        parent = model.parent
        if parent is None:
            return
        parent_gav = GAV.of(parent)
        if parent_gav in self.related:
            version = self._version(version_format, parent_gav)
            logger.debug(f"set parent version to {version} ({parent_gav})")
            parent.version = version

    def update_version(self, model: Model, version_format: str) -> None:
        if model.version is None:
            return
        version = self._version(version_format, GAV.of(model))
        logger.debug(f"set version to {version}")
        model.version = version

    def update_dependency_versions(self, section: ModelBase, version_format: str) -> None:
        self._update_versions(section, "dependencies", section.dependencies, version_format)
        if section.dependency_management is not None:
            self._update_versions(section, "dependency management",
                                  section.dependency_management, version_format)

    def update_plugin_versions(self, section: ModelBase, version_format: str) -> None:
        if section.build is not None:
            self._update_versions(section, "plugins", section.build.plugins, version_format)
            if section.build.plugin_management is not None:
                self._update_versions(section, "plugin management",
                                      section.build.plugin_management, version_format)
        if section.reporting is not None:
            self._update_versions(section, "reporting plugins", section.reporting.plugins, version_format)

    def update_property_values(self, section: ModelBase, property_formats: Mapping[str, str],
                               original_gav: GAV) -> None:
        placeholders = project_placeholders(self.placeholders, original_gav)
        log_header = True
        for name, value in list(section.properties.items()):
            property_format = property_formats.get(name)
            if property_format is None:
                continue
            new_value = render_property(property_format, value, placeholders)
            if new_value != value:
                if log_header:
                    logger.info(section_log_header("properties", section))
                    log_header = False
                logger.info(f"set property {name} to {new_value}")
                section.add_property(name, new_value)

    def add_git_properties(self, model: Model) -> None:
        for name, value in self.git_properties.items():
            model.add_property(name, value)

    def _update_versions(self, section: ModelBase, title: str,
                         entries: Iterable, version_format: str) -> None:
        related_entries = self.filter_related(entries)
        if not related_entries:
            return
        logger.debug(section_log_header(title, section))
        for entry in related_entries:
            if entry.version is None:
                continue
            gav = GAV.of(entry)
            version = self._version(version_format, gav)
            logger.debug(f"{gav.project_id}: set version to {version}")
            entry.version = version

    def filter_related(self, entries: Iterable) -> List:
        return [entry for entry in entries if GAV.of(entry) in self.related]

    def _version(self, version_format: str, gav: GAV) -> str:
        return render_version(version_format, project_placeholders(self.placeholders, gav))


def _sections(model: Model) -> List[ModelBase]:
    return [model, *model.profiles]


def section_log_header(title: str, section: ModelBase) -> str:
    header = f"{title}:"
    if isinstance(section, Profile):
        header = f"profile {section.id} {header}"
    return header

