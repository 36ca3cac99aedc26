"""
Shared utility functions for gitversioning.
"""
import functools
from itertools import zip_longest
from typing import List, Optional, Union

# Maven qualifier order; "" is a release
QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]
QUALIFIER_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
SHORT_QUALIFIERS = {"a": "alpha", "b": "beta", "m": "milestone"}
RELEASE_QUALIFIER = ""

Item = Union[int, str, list]


def parse_maven_version(version: str) -> List[Item]:
    """
    Split a version into Maven version items.

    Numbers become ints, qualifiers become their canonical names and
    every '-' or digit/letter transition opens a nested list. Trailing
    zeros and release qualifiers are dropped, so "1.0.0.RELEASE" and
    "1" parse alike.

    Example:
        parse_maven_version("1.0.0-M1")   # [1, ['milestone', [1]]]
    """
    version = version.lower()
    items: List[Item] = []
    current = items
    lists = [items]
    is_digit = False
    start = 0

    def parse_item(digit: bool, text: str) -> Item:
        return int(text) if digit else _qualifier(text, False)

    def open_list() -> None:
        nonlocal current
        sublist: List[Item] = []
        current.append(sublist)
        current = sublist
        lists.append(sublist)

    for index, char in enumerate(version):
        if char == '.':
            current.append(0 if index == start else parse_item(is_digit, version[start:index]))
            start = index + 1
        elif char == '-':
            current.append(0 if index == start else parse_item(is_digit, version[start:index]))
            start = index + 1
            open_list()
        elif '0' <= char <= '9':
            if not is_digit and index > start:
                current.append(_qualifier(version[start:index], True))
                start = index
                open_list()
            is_digit = True
        else:
            if is_digit and index > start:
                current.append(parse_item(True, version[start:index]))
                start = index
                open_list()
            is_digit = False

    if len(version) > start:
        current.append(parse_item(is_digit, version[start:]))

    for item_list in reversed(lists):
        _normalize(item_list)
    return items


def compare_versions(left: str, right: str) -> int:
    """Compare two version strings by Maven ordering; returns -1, 0 or 1."""
    return _compare_items(parse_maven_version(left), parse_maven_version(right))


# Sort key ordering version-like strings the way Maven orders artifact versions:
# 1.0-alpha < 1.0-beta < 1.0-M1 < 1.0-rc < 1.0-SNAPSHOT < 1.0 = 1.0.Final < 1.0-sp < 1.0.1
version_sort_key = functools.cmp_to_key(compare_versions)


def _qualifier(text: str, followed_by_digit: bool) -> str:
    if followed_by_digit and len(text) == 1:
        text = SHORT_QUALIFIERS.get(text, text)
    return QUALIFIER_ALIASES.get(text, text)


def _comparable_qualifier(qualifier: str) -> str:
    if qualifier in QUALIFIERS:
        return str(QUALIFIERS.index(qualifier))
    return f"{len(QUALIFIERS)}-{qualifier}"


def _is_null(item: Item) -> bool:
    if isinstance(item, list):
        return not item
    if isinstance(item, int):
        return item == 0
    return item == RELEASE_QUALIFIER


def _normalize(items: List[Item]) -> None:
    for index in range(len(items) - 1, -1, -1):
        if _is_null(items[index]):
            del items[index]
        elif not isinstance(items[index], list):
            break


def _cmp(left, right) -> int:
    return (left > right) - (left < right)


def _compare_items(left: Item, right: Optional[Item]) -> int:
    if isinstance(left, int):
        if right is None:
            return 0 if left == 0 else 1
        if isinstance(right, int):
            return _cmp(left, right)
        return 1

    if isinstance(left, str):
        if right is None:
            return _cmp(_comparable_qualifier(left), _comparable_qualifier(RELEASE_QUALIFIER))
        if isinstance(right, str):
            return _cmp(_comparable_qualifier(left), _comparable_qualifier(right))
        return -1

    if right is None:
        return _compare_items(left[0], None) if left else 0
    if isinstance(right, int):
        return -1
    if isinstance(right, str):
        return 1
    for left_item, right_item in zip_longest(left, right):
        if left_item is None:
            result = -_compare_items(right_item, None)
        else:
            result = _compare_items(left_item, right_item)
        if result != 0:
            return result
    return 0


def slugify(value) -> str:
    """Make a value safe for embedding in a version: path separators become dashes."""
    if value is None:
        return ""
    return value.replace("/", "-")


def pattern_group_names(pattern) -> list:
    """Named capture groups of a compiled regex, in declaration order."""
    if pattern is None:
        return []
    return sorted(pattern.groupindex, key=pattern.groupindex.get)


def pattern_group_values(pattern, text) -> dict:
    """
    Named group values of `pattern` fully matched against `text`.

    Groups of a non-matching text, and groups that did not participate
    in the match, map to None.
    """
    names = pattern_group_names(pattern)
    match = pattern.fullmatch(text) if text is not None else None
    if match is None:
        return {name: None for name in names}
    return {name: match.group(name) for name in names}
