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
Semantic version validation and release ordering.

Release versions are plain ``MAJOR.MINOR.PATCH`` triples. Pre-release and
build metadata are rejected, as are prefixes such as ``v1.2.3``.
"""

import re
from dataclasses import dataclass

from mobship.utils.cmd.cmd_util import exec_command
from mobship.utils.errors import ConfigurationError, OrderingError, PublicationError

VERSION_PATTERN = re.compile(r"^([0-9]+)\.([0-9]+)\.([0-9]+)$")

# Leading non-numeric prefix of a tag name, e.g. "v" or "release-"
TAG_PREFIX_PATTERN = re.compile(r"^[^0-9]*")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    major: int
    minor: int
    patch: int

    def __str__(self):
        return f"{self.major}.{self.minor}.{self.patch}"

    def as_tuple(self):
        return (self.major, self.minor, self.patch)


ZERO_VERSION = SemanticVersion(0, 0, 0)


def validate(version_str: str) -> SemanticVersion:
    """
    Parse a version string into a SemanticVersion.

    Args:
        version_str: Version string such as "1.2.3"

    Returns:
        SemanticVersion

    Raises:
        ConfigurationError: the string is not exactly three dot-separated
            non-negative integers
    """
    # fullmatch so a trailing newline is not accepted the way "$" would
    match = VERSION_PATTERN.fullmatch(version_str or "")
    if not match:
        raise ConfigurationError(
            f"Invalid version '{version_str}': expected MAJOR.MINOR.PATCH, e.g. 1.2.3"
        )
    return SemanticVersion(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def is_greater(candidate: SemanticVersion, latest: SemanticVersion) -> bool:
    """Return True only if candidate is strictly greater than latest."""
    if candidate.major > latest.major:
        return True
    if candidate.major < latest.major:
        return False
    if candidate.minor > latest.minor:
        return True
    if candidate.minor < latest.minor:
        return False
    return candidate.patch > latest.patch


def get_git_tags(project_dir: str) -> list:
    """List local git tags of the repository."""
    err_code, output = exec_command(["git", "tag", "--list"], cwd=project_dir)
    if err_code != 0:
        raise PublicationError("Failed to list git tags", output=output)
    return [line.strip() for line in output.splitlines() if line.strip()]


def select_latest_tag(tags: list) -> str:
    """
    Pick the latest tag by plain string order.

    This matches `git tag | sort | tail -1`, so "0.9.0" sorts after "0.10.0".
    """
    if not tags:
        return str(ZERO_VERSION)
    return sorted(tags)[-1]


def strip_tag_prefix(tag: str) -> str:
    return TAG_PREFIX_PATTERN.sub("", tag, count=1)


def latest_tag(project_dir: str = ".") -> SemanticVersion:
    """
    Version of the latest git tag, or 0.0.0 when the repository has none.

    Raises:
        ConfigurationError: the latest tag does not hold a valid version
        PublicationError: git could not list the tags
    """
    tag = select_latest_tag(get_git_tags(project_dir))
    try:
        return validate(strip_tag_prefix(tag))
    except ConfigurationError as e:
        raise ConfigurationError(f"Latest tag '{tag}' is not a valid version: {e}")


def check_release_version(version_str: str, project_dir: str = ".") -> SemanticVersion:
    """
    Validate a release candidate against the latest tag.

    Raises:
        ConfigurationError: malformed version string
        OrderingError: candidate is not strictly greater than the latest tag
    """
    candidate = validate(version_str)
    latest = latest_tag(project_dir)
    if not is_greater(candidate, latest):
        raise OrderingError(
            f"Version {candidate} must be greater than the latest tag {latest}"
        )
    return candidate
