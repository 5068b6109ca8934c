#
# Copyright 2024 mobship Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
In-place rewriting of version declarations in manifests.

Each rewrite targets one named declaration through an anchored regular
expression matching the whole declaration, never a prefix, so neighbouring
fields such as `releaseTagSuffix` are left alone. Applying a rewrite twice
gives the same text as applying it once.
"""

import re
from pathlib import Path

from mobship.utils.errors import PackagingError


def swift_string_let(name: str):
    # let releaseTag = "0.1.0"
    return re.compile(
        r'^(?P<prefix>[ \t]*let[ \t]+' + re.escape(name) +
        r'[ \t]*(?::[ \t]*String[ \t]*)?=[ \t]*")(?P<value>[^"\n]*)(?P<suffix>")',
        re.MULTILINE,
    )


def swift_bool_let(name: str):
    # let useLocalFramework = false
    return re.compile(
        r'^(?P<prefix>[ \t]*let[ \t]+' + re.escape(name) +
        r'[ \t]*(?::[ \t]*Bool[ \t]*)?=[ \t]*)(?P<value>true|false)(?P<suffix>)(?![\w])',
        re.MULTILINE,
    )


def kotlin_string_const(name: str):
    # const val packageVersion = "0.1.0"
    return re.compile(
        r'^(?P<prefix>[ \t]*(?:const[ \t]+)?val[ \t]+' + re.escape(name) +
        r'[ \t]*(?::[ \t]*String[ \t]*)?=[ \t]*")(?P<value>[^"\n]*)(?P<suffix>")',
        re.MULTILINE,
    )


TOML_SECTION = re.compile(r'^[ \t]*\[\[?(?P<name>[^\]]+)\]\]?[ \t]*(?:#.*)?$', re.MULTILINE)
TOML_VERSION = re.compile(
    r'^(?P<prefix>[ \t]*version[ \t]*=[ \t]*")(?P<value>[^"\n]*)(?P<suffix>")',
    re.MULTILINE,
)


def substitute_once(text: str, pattern, value: str, what: str) -> str:
    """
    Replace the value of exactly one declaration matched by pattern.

    Raises:
        PackagingError: the declaration is missing or declared more than once
    """
    matches = list(pattern.finditer(text))
    if not matches:
        raise PackagingError(f"Declaration of {what} not found")
    if len(matches) > 1:
        raise PackagingError(f"{what} is declared {len(matches)} times, expected once")
    match = matches[0]
    return (
        text[:match.start()]
        + match.group("prefix") + value + match.group("suffix")
        + text[match.end():]
    )


def read_declaration(text: str, pattern, what: str) -> str:
    match = pattern.search(text)
    if not match:
        raise PackagingError(f"Declaration of {what} not found")
    return match.group("value")


def set_toml_package_version(text: str, version: str) -> str:
    """Rewrite `version = "..."` inside the [package] table of a Cargo.toml."""
    sections = list(TOML_SECTION.finditer(text))
    for index, section in enumerate(sections):
        if section.group("name").strip() != "package":
            continue
        start = section.end()
        end = sections[index + 1].start() if index + 1 < len(sections) else len(text)
        body = substitute_once(text[start:end], TOML_VERSION, version, "[package].version")
        return text[:start] + body + text[end:]
    raise PackagingError("No [package] table found")


def rewrite_file(path, transform) -> bool:
    """
    Apply transform to a file's text, writing it back only when it changed.

    Returns:
        bool: True if the file content changed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            original = f.read()
    except OSError as e:
        raise PackagingError(f"Failed to read {path}: {e}")
    updated = transform(original)
    if updated == original:
        return False
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(updated)
    except OSError as e:
        raise PackagingError(f"Failed to write {path}: {e}")
    return True
