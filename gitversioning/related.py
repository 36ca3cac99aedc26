"""
Related project closure for gitversioning.

Projects are related when they belong to the same logical build: the
transitive closure of parent links and module links starting at the
build root, restricted to descriptor files inside both the build
directory and the git work tree, plus any projects declared as related
in the configuration. Only related projects get their versions
rewritten; references to anything else (published dependencies,
third-party plugins) are left alone.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

from .domain.gav import GAV
from .domain.model import Model
from .infra.pom_reader import POM_FILE_NAME, read_model

logger = logging.getLogger(__name__)

ModelLoader = Callable[[Path], Model]


class RelatedProjects:
    """
    Set of related project identities.

    An identity is contained if it is present exactly, or if its group
    and artifact are present with the wildcard version.
    """

    def __init__(self, gavs: Iterable[GAV] = ()):
        self._gavs = frozenset(gavs)

    def __contains__(self, gav: GAV) -> bool:
        return gav in self._gavs or gav.wildcard() in self._gavs

    def __iter__(self) -> Iterator[GAV]:
        return iter(sorted(self._gavs, key=str))

    def __len__(self) -> int:
        return len(self._gavs)

    def __eq__(self, other) -> bool:
        if isinstance(other, RelatedProjects):
            return self._gavs == other._gavs
        if isinstance(other, (set, frozenset)):
            return self._gavs == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"RelatedProjects({sorted(str(gav) for gav in self._gavs)})"


class RelatedProjectCloser:
    """
    Computes the related project closure of a root descriptor.

    Example:
        closer = RelatedProjectCloser(build_directory, git_root)
        related = closer.close(read_model(Path("pom.xml")))
        GAV("org.example", "core", "1.0.0") in related
    """

    def __init__(self, build_directory: Path, repository_root: Path,
                 loader: ModelLoader = read_model,
                 declared: Iterable[GAV] = ()):
        """
        Args:
            build_directory: Directory holding the `.mvn` build state directory
            repository_root: Git work tree root
            loader: Reads a descriptor file into a Model
            declared: Manually declared related projects (wildcard versions)
        """
        self.build_directory = Path(build_directory).resolve()
        self.repository_root = Path(repository_root).resolve()
        self.loader = loader
        self.declared = tuple(declared)
        self._models: Dict[Path, Model] = {}

    def close(self, root: Model) -> RelatedProjects:
        related: Set[GAV] = set()
        self._walk(root, related)
        related.update(self.declared)
        return RelatedProjects(related)

    def _walk(self, model: Model, related: Set[GAV]) -> None:
        gav = GAV.of(model)
        if gav in related:
            return

        # add self
        related.add(gav)

        # related parent project by parent reference
        if model.parent is not None:
            parent_gav = GAV.of(model.parent)
            parent_pom_file = self.parent_pom_file(model)
            if self.is_related_pom(parent_pom_file):
                parent_model = self._read(parent_pom_file)
                if GAV.of(parent_model) == parent_gav:
                    self._walk(parent_model, related)

        # related parent project within parent directory
        parent_model = self.search_parent_in_parent_directory(model)
        if parent_model is not None:
            self._walk(parent_model, related)

        # modules
        for module_pom_file in self.module_pom_files(model):
            self._walk(self._read(module_pom_file), related)

    def is_related_pom(self, pom_file: Optional[Path]) -> bool:
        """
        True if `pom_file` is part of the current build and git work tree.

        Descriptors of published dependencies (`.pom` files in a local
        repository) and files outside the work tree are never related.
        """
        if pom_file is None or not pom_file.is_file():
            return False
        # only project descriptors end in .xml, downloaded ones end in .pom
        if not pom_file.name.endswith(".xml"):
            return False
        canonical_path = str(pom_file.resolve())
        return (canonical_path.startswith(str(self.build_directory) + os.sep)
                and canonical_path.startswith(str(self.repository_root) + os.sep))

    def search_parent_in_parent_directory(self, model: Model) -> Optional[Model]:
        """Descriptor of the parent directory, if it declares `model` as one of its modules."""
        if model.pom_file is None:
            return None
        parent_directory_pom_file = model.project_directory.parent / POM_FILE_NAME
        if not self.is_related_pom(parent_directory_pom_file):
            return None
        parent_directory_model = self._read(parent_directory_pom_file)
        own_pom_file = model.pom_file.resolve()
        for module_pom_file in self.module_pom_files(parent_directory_model):
            if module_pom_file.resolve() == own_pom_file:
                return parent_directory_model
        return None

    @staticmethod
    def parent_pom_file(model: Model) -> Optional[Path]:
        if model.parent is None or model.pom_file is None:
            return None
        # <relativePath/> means the parent is resolved from repositories only
        if not model.parent.relative_path:
            return None
        parent_pom_file = pom_file(model.project_directory, model.parent.relative_path)
        return parent_pom_file if parent_pom_file.exists() else None

    @staticmethod
    def module_pom_files(model: Model) -> List[Path]:
        """Existing descriptor files of all modules, including those declared in profiles."""
        if model.pom_file is None:
            return []
        modules = list(model.modules)
        for profile in model.profiles:
            modules.extend(profile.modules)

        module_files: List[Path] = []
        seen: Set[Path] = set()
        for module in modules:
            module_file = pom_file(model.project_directory, module)
            key = module_file.resolve()
            if key not in seen and module_file.exists():
                seen.add(key)
                module_files.append(module_file)
        return module_files

    def _read(self, path: Path) -> Model:
        key = path.resolve()
        model = self._models.get(key)
        if model is None:
            model = self.loader(path)
            self._models[key] = model
        return model


def pom_file(directory: Path, relative_path: str) -> Path:
    """Descriptor file for a path relative to `directory`; directories resolve to their pom.xml."""
    path = Path(directory) / relative_path
    if path.is_dir():
        path = path / POM_FILE_NAME
    return path
