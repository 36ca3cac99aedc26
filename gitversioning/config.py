#!/usr/bin/env python3

import os
import re
import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Pattern, Tuple

import logging
import sys

import yaml

from .domain.gav import GAV
from .domain.refs import RefRule, RefType, MATCH_ALL
from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gitversioning")

BUILD_STATE_DIRECTORY = ".mvn"
CONFIG_FILE_NAMES = ['git-versioning.yaml', 'git-versioning.yml', 'git-versioning.toml', 'git-versioning.json']
CONFIG_ENV_VAR = 'GITVERSIONING_CONFIG'

OPTION_NAME_DISABLE = "versioning.disable"
OPTION_NAME_UPDATE_POM = "versioning.updatePom"
OPTION_ENV_PREFIX = "VERSIONING_"


@dataclass(frozen=True)
class Configuration:
    """
    Parsed versioning configuration.

    Attributes:
        refs: Ref rules in declared order
        consider_tags_on_branches: Let tag rules match on an attached HEAD
        rev: Fallback rule bound to the head commit, None if not configured
        related_projects: Manually declared related projects (wildcard versions)
        disable: Disable versioning
        update_pom: Default for overwriting original descriptors
        describe_tag_pattern: Default describe tag pattern
    """
    refs: Tuple[RefRule, ...] = ()
    consider_tags_on_branches: bool = False
    rev: Optional[RefRule] = None
    related_projects: Tuple[GAV, ...] = ()
    disable: bool = False
    update_pom: bool = False
    describe_tag_pattern: Pattern = MATCH_ALL
    source: Optional[Path] = field(default=None, compare=False)


def find_build_state_directory(base_directory) -> Path:
    """
    Find the `.mvn` directory in `base_directory` or any of its parents.

    Raises:
        FileNotFoundError: If no directory in the hierarchy has one
    """
    search_directory = Path(base_directory).resolve()
    for directory in (search_directory, *search_directory.parents):
        candidate = directory / BUILD_STATE_DIRECTORY
        if candidate.is_dir():
            return candidate
    raise FileNotFoundError(f"Can not find {BUILD_STATE_DIRECTORY} directory in hierarchy of {base_directory}")


def get_config_path(build_state_directory: Path) -> Optional[Path]:
    """Get the path to the configuration file.

    Checks in order:
    1. GITVERSIONING_CONFIG environment variable
    2. git-versioning.{yaml,yml,toml,json} in the `.mvn` directory
    """
    if CONFIG_ENV_VAR in os.environ:
        path = Path(os.environ[CONFIG_ENV_VAR])
        if not path.exists():
            raise FileNotFoundError(f"Config file from {CONFIG_ENV_VAR} does not exist: {path}")
        return path

    for filename in CONFIG_FILE_NAMES:
        path = Path(build_state_directory) / filename
        if path.exists():
            return path
    return None


def get_default_config() -> dict:
    """Get default configuration."""
    return {
        "disable": False,
        "update_pom": False,
        "describe_tag_pattern": ".*",
        "refs": {
            "consider_tags_on_branches": False,
            "list": [],
        },
        "rev": None,
        "related_projects": [],
    }


def read_config_file(config_path: Path) -> dict:
    """Read a configuration file, choosing the format by suffix."""
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            file_config = tomllib.load(f)
    elif suffix in ['.yaml', '.yml']:
        with open(config_path, 'r') as f:
            file_config = yaml.safe_load(f)
    else:
        # Default to JSON format
        with open(config_path, 'r') as f:
            file_config = json.load(f)
    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return file_config


def load_config(build_state_directory: Path) -> Configuration:
    """Load and parse the configuration of the build owning `build_state_directory`."""
    config_path = get_config_path(build_state_directory)
    config = get_default_config()
    if config_path is not None:
        logger.debug(f"read config from {config_path}")
        try:
            config = merge_configs(config, read_config_file(config_path))
        except (ValueError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e
    else:
        logger.debug(f"no config file in {build_state_directory}, using defaults")
    return parse_config(config, source=config_path)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def parse_config(config: dict, source: Optional[Path] = None) -> Configuration:
    """
    Turn a raw configuration mapping into a Configuration.

    Rule level `describe_tag_pattern` and `update_pom` default to the
    global values, for ref rules and the rev rule alike.

    Raises:
        ConfigError: On unknown ref types, invalid patterns or malformed entries
    """
    describe_tag_pattern = _compile(config.get("describe_tag_pattern") or ".*", "describe_tag_pattern")
    update_pom = bool(config.get("update_pom") or False)

    refs_config = config.get("refs") or {}
    rules = []
    for index, entry in enumerate(refs_config.get("list") or []):
        if not isinstance(entry, dict):
            raise ConfigError(f"refs.list[{index}] must be a mapping")
        rules.append(_parse_rule(entry, _parse_ref_type(entry.get("type"), index),
                                 describe_tag_pattern, update_pom))

    rev = None
    rev_config = config.get("rev")
    if rev_config is not None:
        if not isinstance(rev_config, dict):
            raise ConfigError("rev must be a mapping")
        rev = _parse_rule(dict(rev_config, pattern=None), RefType.COMMIT, describe_tag_pattern, update_pom)

    related_projects = []
    for index, entry in enumerate(config.get("related_projects") or []):
        group_id = entry.get("group_id") if isinstance(entry, dict) else None
        artifact_id = entry.get("artifact_id") if isinstance(entry, dict) else None
        if not group_id or not artifact_id:
            raise ConfigError(f"related_projects[{index}] needs group_id and artifact_id")
        related_projects.append(GAV(group_id, artifact_id).wildcard())

    return Configuration(
        refs=tuple(rules),
        consider_tags_on_branches=bool(refs_config.get("consider_tags_on_branches") or False),
        rev=rev,
        related_projects=tuple(related_projects),
        disable=bool(config.get("disable") or False),
        update_pom=update_pom,
        describe_tag_pattern=describe_tag_pattern,
        source=source,
    )


def _parse_ref_type(value, index: int) -> RefType:
    try:
        return RefType(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"Unexpected ref type in refs.list[{index}]: {value}") from None


def _parse_rule(entry: dict, ref_type: RefType, describe_tag_pattern: Pattern, update_pom: bool) -> RefRule:
    pattern = entry.get("pattern")
    properties = entry.get("properties") or {}
    if not isinstance(properties, dict):
        raise ConfigError(f"properties of {ref_type.value} rule must be a mapping")
    rule_describe_pattern = entry.get("describe_tag_pattern")
    rule_update_pom = entry.get("update_pom")
    return RefRule(
        type=ref_type,
        pattern=_compile(pattern, "pattern") if pattern is not None else None,
        version=entry.get("version"),
        properties={str(name): str(value) for name, value in properties.items()},
        describe_tag_pattern=(_compile(rule_describe_pattern, "describe_tag_pattern")
                              if rule_describe_pattern is not None else describe_tag_pattern),
        update_pom=bool(rule_update_pom) if rule_update_pom is not None else update_pom,
    )


def _compile(pattern, name: str) -> Pattern:
    try:
        return re.compile(str(pattern))
    except re.error as e:
        raise ConfigError(f"Invalid {name} {pattern!r}: {e}") from e


# ---- command options --------------------------------------------------------


def option_env_var_name(name: str) -> str:
    """
    Environment variable carrying a command option.

    `versioning.updatePom` -> `VERSIONING_UPDATE_POM`,
    `git.branch` -> `VERSIONING_GIT_BRANCH`.
    """
    plain_name = re.sub(r"^versioning\.", "", name)
    return OPTION_ENV_PREFIX + "_".join(re.split(r"(?=[A-Z])", plain_name)).replace(".", "_").upper()


class CommandOptions:
    """
    Command option lookup: user properties first, then environment.

    Example:
        options = CommandOptions({"git.branch": "main"})
        options.get("git.branch")        # "main"
        options.get("versioning.disable")  # $VERSIONING_DISABLE or None
    """

    def __init__(self, user_properties: Optional[Mapping[str, str]] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.user_properties = dict(user_properties or {})
        self.environ = os.environ if environ is None else environ

    def get(self, name: str) -> Optional[str]:
        value = self.user_properties.get(name)
        if value is None:
            value = self.environ.get(option_env_var_name(name))
        return value

    def get_bool(self, name: str) -> Optional[bool]:
        value = self.get(name)
        if value is None:
            return None
        return value.strip().lower() == 'true'

    __call__ = get


def is_disabled(options: CommandOptions, config: Configuration) -> bool:
    """Command option wins over the config flag."""
    disabled = options.get_bool(OPTION_NAME_DISABLE)
    if disabled is not None:
        if disabled:
            logger.debug("versioning is disabled by command option")
        return disabled
    if config.disable:
        logger.debug("versioning is disabled by config option")
    return config.disable


def update_pom_option(options: CommandOptions, rule: Optional[RefRule]) -> bool:
    """Command option wins over the matched rule setting."""
    update_pom = options.get_bool(OPTION_NAME_UPDATE_POM)
    if update_pom is not None:
        return update_pom
    if rule is not None and rule.update_pom is not None:
        return rule.update_pom
    return False


def config_to_dict(config: Configuration) -> Dict:
    """Serializable view of a Configuration (for `gitversioning config`)."""
    def rule_to_dict(rule: RefRule) -> Dict:
        return {
            'type': rule.type.value,
            'pattern': rule.pattern_string,
            'version': rule.version,
            'properties': dict(rule.properties),
            'describe_tag_pattern': rule.describe_tag_pattern.pattern,
            'update_pom': rule.update_pom,
        }

    return {
        'source': str(config.source) if config.source else None,
        'disable': config.disable,
        'update_pom': config.update_pom,
        'describe_tag_pattern': config.describe_tag_pattern.pattern,
        'refs': {
            'consider_tags_on_branches': config.consider_tags_on_branches,
            'list': [rule_to_dict(rule) for rule in config.refs],
        },
        'rev': rule_to_dict(config.rev) if config.rev else None,
        'related_projects': [
            {'group_id': gav.group_id, 'artifact_id': gav.artifact_id}
            for gav in config.related_projects
        ],
    }
