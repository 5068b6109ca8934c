#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_android.py
# mobship
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
Android build pipeline.

The Gradle project compiles the native core for every ABI and bundles it
with the generated Kotlin bindings into an AAR, so this script only cleans
the Gradle outputs and runs the assemble task for the requested mode.

Output:
    - AAR: android/*/build/outputs/aar/*.aar
"""

from pathlib import Path

from mobship.build_scripts.build_utils import system_is_windows
from mobship.commands.clean import ProjectCleaner
from mobship.utils.cmd.cmd_util import run_or_raise
from mobship.utils.errors import BuildError, PackagingError
from mobship.utils.models import AGGREGATE, Artifact, ArtifactKind, BuildMode
from mobship.utils.pipeline import Pipeline


class AndroidBuild:
    def __init__(self, config, release=False, verbose=False):
        self.config = config
        self.mode = BuildMode.from_release_flag(release)
        self.verbose = verbose
        self.project_dir = config.path(config.android_project_dir)
        self.archives = []

    def gradle_wrapper(self) -> Path:
        name = "gradlew.bat" if system_is_windows() else "gradlew"
        return self.project_dir / name

    def assemble_task(self) -> str:
        return "assembleRelease" if self.mode == BuildMode.RELEASE else "assembleDebug"

    def clean(self):
        cleaner = ProjectCleaner(self.config)
        cleaner.clean_android()
        cleaner.raise_on_failure()

    def assemble(self):
        wrapper = self.gradle_wrapper()
        if not wrapper.is_file():
            raise BuildError(f"Gradle wrapper not found: {wrapper}")
        run_or_raise(
            [str(wrapper), self.assemble_task()] + list(self.config.android_extra_tasks),
            BuildError,
            f"gradle {self.assemble_task()}",
            cwd=str(self.project_dir),
            verbose=self.verbose,
        )

    def collect_archives(self):
        paths = sorted(self.project_dir.glob("**/build/outputs/aar/*.aar"))
        if not paths:
            raise PackagingError(f"Gradle produced no .aar under {self.project_dir}")
        self.archives = [Artifact(ArtifactKind.ARCHIVE_BUNDLE, p, AGGREGATE) for p in paths]
        for archive in self.archives:
            print(f"  {archive.path}")
        return self.archives

    def pipeline(self) -> Pipeline:
        pipeline = Pipeline(f"build android ({self.mode.value})")
        pipeline.add("clean", self.clean)
        pipeline.add(self.assemble_task(), self.assemble)
        pipeline.add("collect archives", self.collect_archives)
        return pipeline


def main(config, release=False, verbose=False):
    print(f"==================build_android (mode: {'release' if release else 'debug'})========================")
    return AndroidBuild(config, release=release, verbose=verbose).pipeline().run()
