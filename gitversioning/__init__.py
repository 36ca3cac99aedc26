"""
gitversioning - Derive Maven project versions from git.

gitversioning matches the checked out branch or tag against configured
ref rules and rewrites the versions (and selected properties) of every
project that belongs to the build, writing a versioned copy of each
descriptor while keeping its formatting and comments intact.

Quick Start:
    from pathlib import Path
    from gitversioning import BuildContext, CommandOptions, VersioningService

    # Version a build as if branch "main" was checked out
    context = BuildContext(Path("."), CommandOptions({"git.branch": "main"}))
    service = VersioningService(context)
    for model in service.process_build(Path("pom.xml")):
        print(model.artifact_id, model.version)

    # Or from the command line
    #   gitversioning apply . -D git.branch=main

Configuration lives in `.mvn/git-versioning.yaml`:

    refs:
      list:
        - type: branch
          pattern: ".+"
          version: "${ref}-SNAPSHOT"
        - type: tag
          pattern: "v(?P<version>.*)"
          version: "${ref.version}"
    rev:
      version: "${commit}"
"""

__version__ = "0.1.0"

from .config import CommandOptions, Configuration, load_config
from .domain import GAV, RefMatch, RefRule, RefType
from .exit_codes import (
    CommandError,
    ConfigError,
    GitError,
    StructuralDivergenceError,
    UnresolvedPlaceholderError,
)
from .services import BuildContext, VersioningService

__all__ = [
    '__version__',
    'BuildContext',
    'VersioningService',
    'CommandOptions',
    'Configuration',
    'load_config',
    'GAV',
    'RefMatch',
    'RefRule',
    'RefType',
    'CommandError',
    'ConfigError',
    'GitError',
    'StructuralDivergenceError',
    'UnresolvedPlaceholderError',
]
