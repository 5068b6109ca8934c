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

"""Values passed between pipeline stages."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from mobship.utils.version import SemanticVersion


class Platform(Enum):
    IOS = "ios"
    ANDROID = "android"


class BuildMode(Enum):
    DEBUG = "debug"
    RELEASE = "release"

    @classmethod
    def from_release_flag(cls, release: bool) -> "BuildMode":
        return cls.RELEASE if release else cls.DEBUG


class ArtifactKind(Enum):
    STATIC_LIBRARY = "staticLibrary"
    FAT_STATIC_LIBRARY = "fatStaticLibrary"
    BINDING_SOURCE = "bindingSource"
    FRAMEWORK_BUNDLE = "frameworkBundle"
    ARCHIVE_BUNDLE = "archiveBundle"
    COMPRESSED_BUNDLE = "compressedBundle"


# produced_by value for artifacts built from several targets
AGGREGATE = "aggregate"


@dataclass(frozen=True)
class BuildTarget:
    platform: Platform
    triple: str
    mode: BuildMode
    simulator: bool = False

    def __str__(self):
        return f"{self.platform.value}:{self.triple}({self.mode.value})"


@dataclass(frozen=True)
class Artifact:
    kind: ArtifactKind
    path: Path
    produced_by: Union[BuildTarget, str]


@dataclass(frozen=True)
class ReleaseRecord:
    version: SemanticVersion
    checksum: str
    tag: str
