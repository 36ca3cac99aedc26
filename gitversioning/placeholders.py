"""
Placeholder map and format rendering for gitversioning.

Version and property formats reference computed values with `${key}`
tokens, e.g. `${ref.slug}-${commit.short}${dirty.snapshot}`. Values are
produced lazily: every key maps to a zero-argument producer that runs
at most once, so expensive values (describe, timestamp formatting,
regex group extraction) are only computed when a format needs them,
and a value once seen keeps its value for the rest of the build.

Key families:
    commit, commit.short
    commit.timestamp[.year|.year.2digit|.month|.day|.hour|.minute|.second|.datetime]
    ref, ref.slug, ref.<group>, ref.<group>.slug
    dirty, dirty.snapshot
    describe, describe.tag, describe.distance, describe.tag.<group>[.slug]
    property.<name>, env.<NAME>
    version, version.release, version.major, version.minor, version.patch
    value (property formats only)
"""

import re
import threading
from datetime import timezone
from typing import Callable, Dict, Iterator, Mapping, Optional, Union

from .domain.gav import GAV
from .domain.refs import RefMatch
from .exit_codes import UnresolvedPlaceholderError
from .situation import GitSituation
from .utils import slugify, pattern_group_names, pattern_group_values

PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
SNAPSHOT_SUFFIX = "-SNAPSHOT"
DIRTY_SUFFIX = "-DIRTY"


class Lazy:
    """Zero-argument producer that computes its value once."""

    _UNSET = object()

    def __init__(self, producer: Callable[[], object]):
        self._producer = producer
        self._value = Lazy._UNSET
        self._lock = threading.Lock()

    def __call__(self):
        if self._value is Lazy._UNSET:
            with self._lock:
                if self._value is Lazy._UNSET:
                    self._value = self._producer()
        return self._value


class PlaceholderMap(Mapping[str, Callable[[], str]]):
    """
    Mapping of placeholder keys to memoizing producers.

    Plain strings given to `put` are wrapped into producers. `derive`
    returns a new map that shares the producers (and therefore the
    already computed values) of this one.
    """

    def __init__(self, producers: Optional[Dict[str, Callable[[], str]]] = None):
        self._producers: Dict[str, Callable[[], str]] = dict(producers or {})

    def put(self, key: str, value: Union[str, Callable[[], str]]) -> None:
        if callable(value):
            self._producers[key] = value if isinstance(value, Lazy) else Lazy(value)
        else:
            self._producers[key] = Lazy(lambda: value)

    def value(self, key: str) -> str:
        return self._producers[key]()

    def derive(self) -> 'PlaceholderMap':
        return PlaceholderMap(self._producers)

    def __getitem__(self, key: str) -> Callable[[], str]:
        return self._producers[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._producers)

    def __len__(self) -> int:
        return len(self._producers)


def render(text: str, placeholders: Mapping[str, Callable[[], str]]) -> str:
    """
    Substitute every `${key}` in `text`.

    Raises:
        UnresolvedPlaceholderError: If a key is not defined
    """
    def substitute(match):
        key = match.group(1)
        producer = placeholders.get(key)
        if producer is None:
            raise UnresolvedPlaceholderError(key, text)
        value = producer()
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(substitute, text)


def render_version(version_format: str, placeholders: PlaceholderMap) -> str:
    """Render a version format; the result is slugified as a whole."""
    return slugify(render(version_format, placeholders))


def render_property(property_format: str, original_value: Optional[str], placeholders: PlaceholderMap) -> str:
    """Render a property format with the original property value as `${value}`."""
    property_placeholders = placeholders.derive()
    property_placeholders.put("value", original_value if original_value is not None else "")
    return render(property_format, property_placeholders)


def global_placeholders(
    situation: GitSituation,
    match: RefMatch,
    user_properties: Optional[Mapping[str, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PlaceholderMap:
    """
    Placeholders shared by every project of the build.

    Args:
        situation: Current git situation
        match: Resolved ref match
        user_properties: Build parameters, available as `property.<name>`
        environ: Environment variables, available as `env.<NAME>`
    """
    placeholders = PlaceholderMap()

    placeholders.put("commit", match.commit)
    placeholders.put("commit.short", lambda: match.commit[:7])

    timestamp = situation.timestamp
    epoch_seconds = int(timestamp.timestamp())
    placeholders.put("commit.timestamp", lambda: str(epoch_seconds))
    placeholders.put("commit.timestamp.year", lambda: str(timestamp.year))
    placeholders.put("commit.timestamp.year.2digit", lambda: str(timestamp.year % 100))
    placeholders.put("commit.timestamp.month", lambda: f"{timestamp.month:02d}")
    placeholders.put("commit.timestamp.day", lambda: f"{timestamp.day:02d}")
    placeholders.put("commit.timestamp.hour", lambda: f"{timestamp.hour:02d}")
    placeholders.put("commit.timestamp.minute", lambda: f"{timestamp.minute:02d}")
    placeholders.put("commit.timestamp.second", lambda: f"{timestamp.second:02d}")
    placeholders.put("commit.timestamp.datetime", lambda: (
        timestamp.strftime("%Y%m%d.%H%M%S") if epoch_seconds > 0 else "00000000.000000"))

    ref_name = match.ref_name
    placeholders.put("ref", ref_name)
    placeholders.put("ref.slug", lambda: slugify(ref_name))

    rule = match.rule
    if rule.pattern is not None:
        for group_name, value in pattern_group_values(rule.pattern, ref_name).items():
            group_value = value if value is not None else ""
            placeholders.put(f"ref.{group_name}", group_value)
            placeholders.put(f"ref.{group_name}.slug", lambda group_value=group_value: slugify(group_value))

    dirty = Lazy(lambda: not situation.clean)
    placeholders.put("dirty", lambda: DIRTY_SUFFIX if dirty() else "")
    placeholders.put("dirty.snapshot", lambda: SNAPSHOT_SUFFIX if dirty() else "")

    describe_tag_pattern = rule.describe_tag_pattern
    description = Lazy(lambda: situation.description(describe_tag_pattern))
    description_tag = Lazy(lambda: description().tag)
    placeholders.put("describe", lambda: str(description()))
    placeholders.put("describe.tag", description_tag)
    placeholders.put("describe.distance", lambda: str(description().distance))

    describe_tag_values = Lazy(lambda: pattern_group_values(describe_tag_pattern, description_tag()))
    for group_name in pattern_group_names(describe_tag_pattern):
        value = Lazy(lambda group_name=group_name: describe_tag_values()[group_name] or "")
        placeholders.put(f"describe.tag.{group_name}", value)
        placeholders.put(f"describe.tag.{group_name}.slug", lambda value=value: slugify(value()))

    # build parameters e.g. -D foo=123 will be available as ${property.foo}
    for name, value in (user_properties or {}).items():
        if value is not None:
            placeholders.put(f"property.{name}", str(value))

    # environment variables e.g. BUILD_NUMBER=123 will be available as ${env.BUILD_NUMBER}
    for name, value in (environ or {}).items():
        placeholders.put(f"env.{name}", value)

    return placeholders


def project_placeholders(global_map: PlaceholderMap, original_gav: GAV) -> PlaceholderMap:
    """
    Global placeholders plus the version keys of one project.

    `version.major`/`.minor`/`.patch` split the version with any
    qualifier (everything from the first '-') removed; missing
    components are empty.
    """
    placeholders = global_map.derive()
    original_version = original_gav.version or ""
    placeholders.put("version", original_version)
    placeholders.put("version.release", lambda: re.sub(r"-SNAPSHOT$", "", original_version))

    components = Lazy(lambda: re.sub(r"-.*$", "", original_version).split("."))
    for index, name in enumerate(("major", "minor", "patch")):
        placeholders.put(
            f"version.{name}",
            lambda index=index: components()[index] if len(components()) > index else "",
        )
    return placeholders


def git_project_properties(situation: GitSituation, match: RefMatch) -> Dict[str, str]:
    """Build metadata properties added to every versioned project."""
    timestamp = situation.timestamp
    epoch_seconds = int(timestamp.timestamp())
    return {
        "git.worktree": str(situation.root_directory.resolve()),
        "git.commit": match.commit,
        "git.commit.short": match.commit[:7],
        "git.commit.timestamp": str(epoch_seconds),
        "git.commit.timestamp.datetime": (
            timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            if epoch_seconds > 0 else "0000-00-00T00:00:00Z"),
        "git.ref": match.ref_name,
        "git.ref.slug": slugify(match.ref_name),
    }
