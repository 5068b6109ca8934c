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
Swift Package Manager manifest updater for mobship.

Package.swift declares the XCFramework as a binary target. For a release
it references the hosted zip through two string constants, the release tag
and the zip's checksum; a boolean constant selects a local build instead:

    let useLocalFramework = false
    let releaseTag = "0.1.0"
    let releaseChecksum = "0543e9..."

Only those three declarations are ever rewritten.
"""

import hashlib
from pathlib import Path

from mobship.utils.errors import PackagingError
from mobship.utils.manifest import (
    read_declaration,
    rewrite_file,
    substitute_once,
    swift_bool_let,
    swift_string_let,
)
from mobship.utils.models import ReleaseRecord


def calculate_checksum(file_path) -> str:
    """
    Calculate SHA256 checksum of a file.

    Same digest as `swift package compute-checksum`.

    Args:
        file_path: Path to file

    Returns:
        SHA256 checksum as hex string
    """
    sha256_hash = hashlib.sha256()
    try:
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
    except OSError as e:
        raise PackagingError(f"Failed to checksum {file_path}: {e}")
    return sha256_hash.hexdigest()


class SPMManifest:
    """Rewrites the release declarations of a Package.swift in place."""

    def __init__(self, config):
        """
        Args:
            config: PipelineConfig naming the manifest and its declarations
        """
        self.config = config
        self.path: Path = config.path(config.package_manifest)

    def apply_release(self, text: str, version: str, checksum: str) -> str:
        text = substitute_once(
            text, swift_string_let(self.config.release_tag_var), version,
            self.config.release_tag_var,
        )
        return substitute_once(
            text, swift_string_let(self.config.checksum_var), checksum,
            self.config.checksum_var,
        )

    def apply_local_flag(self, text: str, use_local: bool) -> str:
        return substitute_once(
            text, swift_bool_let(self.config.local_flag_var),
            "true" if use_local else "false",
            self.config.local_flag_var,
        )

    def update_release(self, record: ReleaseRecord) -> bool:
        """Write the release tag and checksum. Returns True if the file changed."""
        changed = rewrite_file(
            self.path,
            lambda text: self.apply_release(text, record.tag, record.checksum),
        )
        print(f"  {self.path.name}: {self.config.release_tag_var} = \"{record.tag}\"")
        print(f"  {self.path.name}: {self.config.checksum_var} = \"{record.checksum}\"")
        return changed

    def set_local_flag(self, use_local: bool) -> bool:
        changed = rewrite_file(self.path, lambda text: self.apply_local_flag(text, use_local))
        print(f"  {self.path.name}: {self.config.local_flag_var} = {str(use_local).lower()}")
        return changed

    def read_release(self) -> tuple:
        """Current (release tag, checksum) declared by the manifest."""
        text = self.path.read_text(encoding="utf-8")
        return (
            read_declaration(text, swift_string_let(self.config.release_tag_var),
                             self.config.release_tag_var),
            read_declaration(text, swift_string_let(self.config.checksum_var),
                             self.config.checksum_var),
        )
