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
Release publisher for mobship.

Commits the release manifests, tags the commit with the bare version,
pushes both atomically and drafts a GitHub release (via the gh CLI) with the
compressed XCFramework attached. The hosted release is only created once the
commit and tag are on the remote.
"""

import shutil

from mobship.utils.apple.spm import SPMManifest
from mobship.utils.cmd.cmd_util import exec_command, run_or_raise
from mobship.utils.errors import PublicationError


class ReleasePublisher:
    """Handle the git + GitHub release workflow."""

    def __init__(self, config, verbose=False):
        """
        Args:
            config: PipelineConfig. The publisher always works on a copy with
                the local artifact source disabled.
        """
        self.config = config.with_remote_artifact_source()
        self.project_dir = str(self.config.project_dir)
        self.verbose = verbose

    def _git(self, *args, stage=None):
        return run_or_raise(
            ["git"] + list(args),
            PublicationError,
            stage or f"git {args[0]}",
            cwd=self.project_dir,
            verbose=self.verbose,
        )

    def validate_prerequisites(self):
        """Fail before any commit when git or gh cannot be used."""
        for tool in ("git", "gh"):
            if shutil.which(tool) is None:
                raise PublicationError(f"{tool} not found in PATH")
        err_code, output = exec_command(["gh", "auth", "status"], cwd=self.project_dir)
        if err_code != 0:
            raise PublicationError(
                "Not authenticated with GitHub CLI. Run: gh auth login", output=output
            )

    def release_files(self) -> list:
        files = [
            self.config.package_manifest,
            self.config.native_manifest,
            self.config.lock_file,
        ]
        if self.config.path(self.config.android_version_file).is_file():
            files.append(self.config.android_version_file)
        return files

    def force_remote_source(self):
        """A release must never point Package.swift at unpublished local artifacts."""
        SPMManifest(self.config).set_local_flag(self.config.use_local_artifact_source)

    def commit(self, record):
        files = self.release_files()
        self._git("add", "--", *files)
        # Limit the commit to the release files; other staged work stays staged
        self._git("commit", "-m", f"Release {record.tag}", "--", *files)

    def tag(self, record):
        self._git("tag", "-a", record.tag, "-m", f"Release {record.tag}")

    def push(self, record):
        """Push the commit and the tag together; the remote gets both or neither."""
        try:
            self._git(
                "push", "--atomic", self.config.remote, "HEAD", f"refs/tags/{record.tag}",
                stage="git push",
            )
        except PublicationError:
            # Drop the local tag so no tag exists without its published commit
            exec_command(["git", "tag", "-d", record.tag], cwd=self.project_dir)
            raise

    def create_hosted_release(self, record, compressed_bundle):
        run_or_raise(
            [
                "gh", "release", "create", record.tag, str(compressed_bundle.path),
                "--draft", "--generate-notes", "--title", record.tag,
            ],
            PublicationError,
            "gh release create",
            cwd=self.project_dir,
            verbose=self.verbose,
        )

    def publish(self, record, compressed_bundle):
        """
        Publish a release.

        Args:
            record: ReleaseRecord already written into Package.swift
            compressed_bundle: compressedBundle Artifact to attach

        Raises:
            PublicationError: any git or gh failure; nothing after the
                failing step runs
        """
        self.validate_prerequisites()
        self.force_remote_source()
        self.commit(record)
        self.tag(record)
        self.push(record)
        self.create_hosted_release(record, compressed_bundle)
        print(f"  Drafted release {record.tag} with {compressed_bundle.path.name}")
        return record
