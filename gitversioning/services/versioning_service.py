"""
Versioning service for gitversioning.

Entry point of a versioning pass. A BuildContext holds everything that
is computed once per build (configuration, git situation, ref match,
placeholders, related projects, processed models); the service applies
the matched rule to each descriptor it is asked to read and writes the
versioned descriptor file next to the original.

All build-scoped state is guarded by the context lock, so descriptors
may be read concurrently while the first read initializes the build.
"""

import logging
import os
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from ..config import (
    CommandOptions,
    Configuration,
    OPTION_NAME_DISABLE,
    find_build_state_directory,
    is_disabled,
    load_config,
    update_pom_option,
)
from ..domain.gav import GAV
from ..domain.model import Model
from ..domain.refs import RefMatch
from ..infra.git_client import GitClient
from ..infra.pom_reader import read_model
from ..infra.xml_document import RawDocument
from ..patcher import ModelPatcher
from ..placeholders import PlaceholderMap, global_placeholders, git_project_properties
from ..related import RelatedProjectCloser, RelatedProjects
from ..resolver import log_no_match, resolve
from ..situation import GitSituation, build_git_situation
from ..synchronizer import DocumentSynchronizer

logger = logging.getLogger(__name__)

GIT_VERSIONING_POM_NAME = ".git-versioned-pom.xml"


@dataclass
class BuildContext:
    """
    State of one build invocation.

    Every field below `environ` is assigned once, during the first
    `VersioningService.process_model` call, and only read afterwards.
    """
    execution_root: Path
    options: CommandOptions = field(default_factory=CommandOptions)
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    initialized: bool = False
    disabled: bool = False
    build_state_directory: Optional[Path] = None
    configuration: Optional[Configuration] = None
    situation: Optional[GitSituation] = None
    match: Optional[RefMatch] = None
    placeholders: Optional[PlaceholderMap] = None
    git_properties: Dict[str, str] = field(default_factory=dict)
    related: Optional[RelatedProjects] = None
    update_pom: bool = False
    models: Dict[Path, Model] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class VersioningService:
    """
    Applies git based versions to the descriptors of one build.

    Example:
        context = BuildContext(Path("."), CommandOptions({"git.branch": "main"}))
        service = VersioningService(context)
        for model in service.process_build(Path("pom.xml")):
            print(GAV.of(model))
    """

    def __init__(self, context: BuildContext, git_client: Optional[GitClient] = None,
                 loader: Callable[[Path], Model] = read_model):
        self.context = context
        self.git_client = git_client
        self.loader = loader

    def read(self, pom_file: Path) -> Model:
        """Read a descriptor file and version it."""
        return self.process_model(self.loader(Path(pom_file)))

    def process_build(self, root_pom_file: Path) -> List[Model]:
        """
        Version the root descriptor and every module descriptor below it.

        Returns:
            The versioned models in processing order
        """
        models = []
        pending = [Path(root_pom_file)]
        seen = set()
        while pending:
            pom_file = pending.pop(0)
            key = pom_file.resolve()
            if key in seen:
                continue
            seen.add(key)
            model = self.read(pom_file)
            models.append(model)
            pending.extend(RelatedProjectCloser.module_pom_files(model))
        return models

    def process_model(self, model: Model) -> Model:
        """
        Version one descriptor model.

        Unrelated projects, projects without an own version and all
        projects of a disabled or unmatched build are returned as they
        are. A descriptor file already processed in this build returns
        its earlier result.
        """
        context = self.context
        with context.lock:
            if model.pom_file is None:
                logger.debug("skip model - no project model pom file")
                return model

            if not context.initialized:
                self._init(model)
                context.initialized = True

            if context.disabled:
                return model

            project_gav = GAV.of(model)
            if project_gav.version is None:
                logger.debug(f"skip model - can not determine project version - {model.pom_file}")
                return model

            if project_gav not in context.related:
                logger.debug(f"skip model - unrelated project - {model.pom_file}")
                return model

            canonical_pom_file = model.pom_file.resolve()
            cached_model = context.models.get(canonical_pom_file)
            if cached_model is not None:
                return cached_model.clone()
            context.models[canonical_pom_file] = model

            logger.info(project_gav.project_id)

            patcher = ModelPatcher(context.related, context.placeholders, context.git_properties)
            patcher.apply(model, context.match.rule)

            versioned_pom_file = self.write_pom_file(model)
            if context.update_pom:
                logger.debug("updating original POM file")
                shutil.copyfile(versioned_pom_file, model.pom_file)

            logger.info("")
            return model.clone()

    def write_pom_file(self, model: Model) -> Path:
        """Write the versioned descriptor next to the original one."""
        versioned_pom_file = model.project_directory / GIT_VERSIONING_POM_NAME
        logger.debug(f"generate {versioned_pom_file}")

        document = RawDocument.read(model.pom_file)
        DocumentSynchronizer(self.context.match.rule.properties.keys()).patch(document, model)
        document.write(versioned_pom_file)
        return versioned_pom_file

    def _init(self, project_model: Model) -> None:
        from .. import __version__

        context = self.context
        logger.info("")
        logger.info(extension_log_header(f"gitversioning {__version__}"))
        logger.debug(f"execution root directory: {context.execution_root}")

        if context.options.get_bool(OPTION_NAME_DISABLE):
            logger.info("skip - versioning is disabled by command option")
            context.disabled = True
            return

        context.build_state_directory = find_build_state_directory(context.execution_root)
        logger.debug(f".mvn directory: {context.build_state_directory}")
        context.configuration = load_config(context.build_state_directory)
        if is_disabled(context.options, context.configuration):
            logger.info("skip - versioning is disabled")
            context.disabled = True
            return

        situation = build_git_situation(context.execution_root, context.options, context.environ,
                                        self.git_client)
        context.situation = situation
        logger.debug("git situation:")
        logger.debug(f"  root directory: {situation.root_directory}")
        logger.debug(f"  head commit: {situation.rev}")
        logger.debug(f"  head commit timestamp: {situation.timestamp.isoformat()}")
        logger.debug(f"  head branch: {situation.branch}")
        logger.debug(f"  head tags: {list(situation.tags)}")

        configuration = context.configuration
        match = resolve(situation, configuration.refs, configuration.rev,
                        configuration.consider_tags_on_branches)
        if match is None:
            log_no_match(situation, configuration.refs)
            context.disabled = True
            return
        context.match = match

        rule = match.rule
        logger.info(f"matching ref: {match.ref_type.name} - {match.ref_name}")
        logger.info(f"ref configuration: {match.ref_type.name} - pattern: {rule.pattern_string}")
        if rule.describe_tag_pattern.pattern != ".*":
            logger.info(f"  describeTagPattern: {rule.describe_tag_pattern.pattern}")
        if rule.version is not None:
            logger.info(f"  version: {rule.version}")
        if rule.properties:
            logger.info("  properties:")
            for name, value in rule.properties.items():
                logger.info(f"    {name} - {value}")

        context.update_pom = update_pom_option(context.options, rule)
        if context.update_pom:
            logger.info(f"  updatePom: {context.update_pom}")

        context.placeholders = global_placeholders(situation, match, context.options.user_properties,
                                                   context.environ)
        context.git_properties = git_project_properties(situation, match)

        closer = RelatedProjectCloser(context.build_state_directory.parent, situation.root_directory,
                                      self.loader, configuration.related_projects)
        context.related = closer.close(project_model)
        logger.debug("related projects:")
        for gav in context.related:
            logger.debug(f"  {gav}")

        logger.info("")


def extension_log_header(title: str, width: int = 72) -> str:
    """Center `title` in a line of dashes."""
    padding = max(6, width - 2 - len(title))
    left = padding // 2
    right = padding - left
    return f"{'-' * left} {title} {'-' * right}"
