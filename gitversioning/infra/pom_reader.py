"""
Project descriptor loader for gitversioning.

Reads pom.xml files into the descriptor object model. Only the
sections that carry versions, modules or properties are read; every
list keeps the order of the file so it can later be paired with the
raw document element by element.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional
from xml.etree import ElementTree

from ..domain.model import (
    Build,
    Dependency,
    Model,
    ModelBase,
    Parent,
    Plugin,
    Profile,
    ReportPlugin,
    Reporting,
    DEFAULT_DEPENDENCY_TYPE,
    DEFAULT_PLUGIN_GROUP_ID,
    DEFAULT_PARENT_RELATIVE_PATH,
)

logger = logging.getLogger(__name__)

POM_FILE_NAME = "pom.xml"


def read_model(pom_file: Path) -> Model:
    """
    Read a descriptor file.

    Args:
        pom_file: Path to the pom.xml

    Returns:
        Model with `pom_file` set to the given path

    Raises:
        FileNotFoundError: If the file does not exist
        ElementTree.ParseError: If the file is not well-formed XML
    """
    pom_file = Path(pom_file)
    logger.debug(f"read model {pom_file}")
    tree = ElementTree.parse(pom_file)
    model = parse_model(tree.getroot())
    model.pom_file = pom_file
    return model


def read_model_string(source: str, pom_file: Optional[Path] = None) -> Model:
    model = parse_model(ElementTree.fromstring(source))
    model.pom_file = Path(pom_file) if pom_file is not None else None
    return model


def parse_model(project: ElementTree.Element) -> Model:
    _strip_ns(project)
    model = Model(
        group_id=_text(project, 'groupId'),
        artifact_id=_text(project, 'artifactId'),
        version=_text(project, 'version'),
        packaging=_text(project, 'packaging') or 'jar',
    )

    parent = project.find('parent')
    if parent is not None:
        model.parent = Parent(
            group_id=_text(parent, 'groupId'),
            artifact_id=_text(parent, 'artifactId'),
            version=_text(parent, 'version'),
            relative_path=_relative_path(parent),
        )

    _read_model_base(project, model)

    for element in project.findall('profiles/profile'):
        profile = Profile(id=_text(element, 'id'))
        _read_model_base(element, profile)
        model.profiles.append(profile)

    return model


def _read_model_base(element: ElementTree.Element, model: ModelBase) -> None:
    model.modules = [module.text.strip() for module in element.findall('modules/module') if module.text]
    model.properties = _properties(element.find('properties'))
    model.dependencies = _dependencies(element.find('dependencies'))

    management = element.find('dependencyManagement')
    if management is not None:
        model.dependency_management = _dependencies(management.find('dependencies'))

    build = element.find('build')
    if build is not None:
        model.build = Build(plugins=_plugins(build.find('plugins'), Plugin))
        plugin_management = build.find('pluginManagement')
        if plugin_management is not None:
            model.build.plugin_management = _plugins(plugin_management.find('plugins'), Plugin)

    reporting = element.find('reporting')
    if reporting is not None:
        model.reporting = Reporting(plugins=_plugins(reporting.find('plugins'), ReportPlugin))


def _properties(element: Optional[ElementTree.Element]) -> Dict[str, str]:
    if element is None:
        return {}
    return {child.tag: (child.text or '').strip() for child in element if isinstance(child.tag, str)}


def _dependencies(element: Optional[ElementTree.Element]) -> List[Dependency]:
    if element is None:
        return []
    return [
        Dependency(
            group_id=_text(dependency, 'groupId'),
            artifact_id=_text(dependency, 'artifactId'),
            version=_text(dependency, 'version'),
            type=_text(dependency, 'type') or DEFAULT_DEPENDENCY_TYPE,
            classifier=_text(dependency, 'classifier'),
            scope=_text(dependency, 'scope'),
        )
        for dependency in element.findall('dependency')
    ]


def _plugins(element: Optional[ElementTree.Element], plugin_class) -> List[Plugin]:
    if element is None:
        return []
    return [
        plugin_class(
            group_id=_text(plugin, 'groupId') or DEFAULT_PLUGIN_GROUP_ID,
            artifact_id=_text(plugin, 'artifactId'),
            version=_text(plugin, 'version'),
        )
        for plugin in element.findall('plugin')
    ]


def _relative_path(parent: ElementTree.Element) -> str:
    """An absent relativePath defaults to ../pom.xml; an empty one disables the lookup."""
    relative_path = _text(parent, 'relativePath')
    return DEFAULT_PARENT_RELATIVE_PATH if relative_path is None else relative_path


def _text(element: ElementTree.Element, path: str) -> Optional[str]:
    child = element.find(path)
    if child is None:
        return None
    return (child.text or '').strip()


def _strip_ns(el: ElementTree.Element) -> None:
    """
    Remove namespace prefixes from elements and attributes.
    Maven descriptors declare the POM namespace as default namespace,
    which ElementTree would otherwise fold into every tag name.
    """
    for element in el.iter():
        if isinstance(element.tag, str) and element.tag.startswith("{"):
            element.tag = element.tag[element.tag.find("}") + 1:]
        for key in list(element.attrib.keys()):
            if key.startswith("{"):
                element.attrib[key[key.find("}") + 1:]] = element.attrib.pop(key)
