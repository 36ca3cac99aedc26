"""
Raw document synchronization for gitversioning.

The descriptor object model does not keep formatting, comments or
element order details, so the versioned descriptor file is produced by
replaying the patched model values onto the original document. Both
trees are walked in lockstep: every dependency/plugin element is paired
with the model entry at the same position and their identity keys must
agree. Any disagreement means the trees diverged and is fatal; only
version texts and configured property texts are ever replaced.
"""

import logging
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, TypeVar

from .domain.model import Build, Dependency, Model, ModelBase, Plugin, Profile, Reporting
from .domain.model import DEFAULT_DEPENDENCY_TYPE, DEFAULT_PLUGIN_GROUP_ID
from .exit_codes import StructuralDivergenceError
from .infra.xml_document import RawDocument, RawElement

logger = logging.getLogger(__name__)

E = TypeVar('E')
M = TypeVar('M')


def for_each_pair(
    elements: Sequence[E],
    entries: Sequence[M],
    element_key: Callable[[E], str],
    entry_key: Callable[[M], str],
    consumer: Callable[[E, M], None],
    section: str = "entries",
) -> None:
    """
    Advance over `elements` and `entries` together, checking identity keys.

    Raises:
        StructuralDivergenceError: If the sequences differ in length or
            any pair has different keys
    """
    if len(elements) != len(entries):
        raise StructuralDivergenceError(
            f"Unexpected difference of xml and model {section} count: "
            f"{len(elements)} != {len(entries)}")
    for element, entry in zip(elements, entries):
        expected, actual = entry_key(entry), element_key(element)
        if expected != actual:
            raise StructuralDivergenceError(
                f"Unexpected difference of xml and model {section} order: "
                f"{actual} != {expected}")
        consumer(element, entry)


class DocumentSynchronizer:
    """
    Re-applies patched model values onto the original raw document.

    Example:
        document = RawDocument.read(model.pom_file)
        DocumentSynchronizer(rule.properties).patch(document, model)
        document.write(versioned_pom_file)
    """

    def __init__(self, property_names: Iterable[str] = ()):
        """
        Args:
            property_names: Properties whose values are written back
        """
        self.property_names = list(property_names)

    def patch(self, document: RawDocument, model: Model) -> RawDocument:
        project = document.child("project")
        if project is None:
            raise StructuralDivergenceError(f"document root is not a project element: <{document.root.tag}>")

        self.update_parent_version(project, model)
        self.update_version(project, model)
        self.update_sections(project, model)
        self.update_profiles(project, model.profiles)
        return document

    def update_parent_version(self, project: RawElement, model: Model) -> None:
        parent_element = project.child("parent")
        if parent_element is None:
            return
        if model.parent is None:
            raise StructuralDivergenceError("document declares a parent the model does not have")
        version_element = parent_element.child("version")
        if version_element is not None and model.parent.version is not None:
            _replace_text(version_element, model.parent.version)

    def update_version(self, project: RawElement, model: Model) -> None:
        version_element = project.child("version")
        if version_element is not None and model.version is not None:
            _replace_text(version_element, model.version)

    def update_sections(self, element: RawElement, section: ModelBase) -> None:
        self.update_property_values(element, section.properties)
        self.update_dependency_versions(element, section)
        self.update_plugin_versions(element, section.build, section.reporting)

    def update_property_values(self, element: RawElement, properties: Mapping[str, str]) -> None:
        properties_element = element.child("properties")
        if properties_element is None:
            return
        for name in self.property_names:
            property_element = properties_element.child(name)
            if property_element is None:
                continue
            model_value = properties.get(name)
            if model_value is not None:
                _replace_text(property_element, model_value)

    def update_dependency_versions(self, element: RawElement, section: ModelBase) -> None:
        dependencies_element = element.child("dependencies")
        if dependencies_element is not None:
            self._update_dependencies(dependencies_element, section.dependencies, "dependencies")

        management_element = element.child("dependencyManagement")
        if management_element is not None:
            dependencies_element = management_element.child("dependencies")
            if dependencies_element is not None:
                self._update_dependencies(dependencies_element, section.dependency_management or [],
                                          "dependency management")

    def update_plugin_versions(self, element: RawElement, build: Optional[Build],
                               reporting: Optional[Reporting]) -> None:
        build_element = element.child("build")
        if build_element is not None:
            plugins_element = build_element.child("plugins")
            if plugins_element is not None:
                self._update_plugins(plugins_element, build.plugins if build else [], "plugins")
            management_element = build_element.child("pluginManagement")
            if management_element is not None:
                plugins_element = management_element.child("plugins")
                if plugins_element is not None:
                    plugins = build.plugin_management if build and build.plugin_management else []
                    self._update_plugins(plugins_element, plugins, "plugin management")

        reporting_element = element.child("reporting")
        if reporting_element is not None:
            plugins_element = reporting_element.child("plugins")
            if plugins_element is not None:
                self._update_plugins(plugins_element, reporting.plugins if reporting else [], "reporting plugins")

    def update_profiles(self, project: RawElement, profiles: List[Profile]) -> None:
        profiles_element = project.child("profiles")
        if profiles_element is None:
            return
        profile_map = {profile.id: profile for profile in profiles}
        for profile_element in profiles_element.children("profile"):
            id_element = profile_element.child("id")
            profile_id = id_element.text.strip() if id_element is not None else None
            profile = profile_map.get(profile_id)
            if profile is None:
                raise StructuralDivergenceError(f"document profile {profile_id} is missing in model")
            logger.debug(f"update profile {profile_id}")
            self.update_sections(profile_element, profile)

    def _update_dependencies(self, dependencies_element: RawElement, dependencies: List[Dependency],
                             section: str) -> None:
        for_each_pair(
            dependencies_element.children("dependency"), dependencies,
            dependency_management_key, lambda dependency: dependency.management_key,
            _set_version, section,
        )

    def _update_plugins(self, plugins_element: RawElement, plugins: List[Plugin], section: str) -> None:
        for_each_pair(
            plugins_element.children("plugin"), plugins,
            plugin_key, lambda plugin: plugin.key,
            _set_version, section,
        )


def dependency_management_key(element: RawElement) -> str:
    """group:artifact:type[:classifier] of a dependency element."""
    classifier = _child_text(element, "classifier")
    return (f"{_child_text(element, 'groupId') or ''}"
            f":{_child_text(element, 'artifactId') or ''}"
            f":{_child_text(element, 'type') or DEFAULT_DEPENDENCY_TYPE}"
            + (f":{classifier}" if classifier is not None else ""))


def plugin_key(element: RawElement) -> str:
    """group:artifact of a plugin element."""
    return (f"{_child_text(element, 'groupId') or DEFAULT_PLUGIN_GROUP_ID}"
            f":{_child_text(element, 'artifactId') or ''}")


def _child_text(element: RawElement, name: str) -> Optional[str]:
    child = element.child(name)
    return child.text.strip() if child is not None else None


def _set_version(element: RawElement, entry) -> None:
    version_element = element.child("version")
    if version_element is not None and entry.version is not None:
        _replace_text(version_element, entry.version)


def _replace_text(element: RawElement, value: str) -> None:
    """Set the text of a leaf element unless it already holds `value` (ignoring surrounding whitespace)."""
    if element.text.strip() != value:
        element.set_text(value)
