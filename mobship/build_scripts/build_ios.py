#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_ios.py
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
iOS release pipeline.

Builds the native core into an XCFramework consumed by the Swift package:
- Cleaning the staging and fat-library directories of a previous run
- Building static libraries with cargo for every device and simulator triple
- Merging the simulator libraries into one fat library with lipo
- Generating Swift bindings with uniffi-bindgen and relocating them into
  the package sources (module map renamed to module.modulemap)
- Creating the XCFramework with xcodebuild
- On release: zipping the XCFramework, writing its checksum and the release
  tag into Package.swift, and publishing the release

Requirements:
- Rust toolchain with the iOS targets installed (rustup target add ...)
- Xcode command line tools (lipo, xcodebuild)
- git and an authenticated gh CLI for releases

Output:
    - XCFramework: target/ios/{framework_name}.xcframework
    - Release zip: target/ios/{framework_name}.xcframework.zip
"""

import os
import shutil

from mobship.build_scripts.build_utils import (
    cargo_build_all,
    lipo_libs,
    make_xcframework,
    zip_xcframework,
)
from mobship.commands.clean import ProjectCleaner
from mobship.utils.apple.spm import SPMManifest, calculate_checksum
from mobship.utils.cmd.cmd_util import run_or_raise
from mobship.utils.errors import BuildError
from mobship.utils.github.publisher import ReleasePublisher
from mobship.utils.models import (
    Artifact,
    ArtifactKind,
    BuildMode,
    Platform,
    ReleaseRecord,
)
from mobship.utils.pipeline import Pipeline
from mobship.utils.version import check_release_version


class IOSBuild:
    def __init__(self, config, release=False, jobs=1, verbose=False):
        self.config = config
        self.release = release
        self.jobs = jobs
        self.verbose = verbose
        self.mode = BuildMode.from_release_flag(release)
        self.targets = config.build_targets(Platform.IOS, self.mode)

        self.version = None
        self.static_libs = []
        self.device_lib = None
        self.simulator_lib = None
        self.bindings = []
        self.xcframework = None
        self.compressed = None
        self.record = None

    def check_version(self):
        self.version = check_release_version(
            self.config.native_version(), str(self.config.project_dir)
        )
        print(f"  Release version: {self.version}")
        return self.version

    def clean(self):
        cleaner = ProjectCleaner(self.config)
        cleaner.clean_ios()
        cleaner.raise_on_failure()

    def build_targets(self):
        self.static_libs = cargo_build_all(
            self.config, self.targets, jobs=self.jobs, verbose=self.verbose
        )
        return self.static_libs

    def _merge(self, libs, dst_dir):
        if len(libs) == 1:
            return libs[0]
        return lipo_libs(libs, dst_dir, self.config.static_lib_name)

    def combine_libraries(self):
        """One archive per platform variant: device, and fat simulator."""
        device_libs = [lib for lib in self.static_libs if not lib.produced_by.simulator]
        simulator_libs = [lib for lib in self.static_libs if lib.produced_by.simulator]
        if not device_libs:
            raise BuildError("No device library was built")

        self.device_lib = self._merge(device_libs, self.config.staging_path / "device")
        if simulator_libs:
            self.simulator_lib = self._merge(simulator_libs, self.config.fat_simulator_path)
        return [lib for lib in (self.device_lib, self.simulator_lib) if lib]

    def generate_bindings(self):
        config = self.config
        device_target = next(t for t in self.targets if not t.simulator)
        dylib = config.cargo_out_dir(device_target) / config.shared_lib_name
        if not dylib.is_file():
            raise BuildError(
                f"{dylib} not found, the crate must also build a cdylib for binding generation"
            )

        out_dir = config.bindings_path
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            os.makedirs(out_dir)
        except OSError as e:
            raise BuildError(f"Failed to prepare {out_dir}: {e}")
        run_or_raise(
            config.bindgen_command + [
                "generate",
                "--library", str(dylib),
                "--language", config.bindgen_language,
                "--out-dir", str(out_dir),
            ],
            BuildError,
            "uniffi-bindgen",
            cwd=str(config.project_dir),
            verbose=self.verbose,
        )

        sources = sorted(out_dir.glob("*.swift"))
        headers = sorted(out_dir.glob("*.h"))
        modulemaps = sorted(out_dir.glob("*.modulemap"))
        if not sources or not headers or len(modulemaps) != 1:
            raise BuildError(
                f"Unexpected binding generator output in {out_dir}: "
                f"{len(sources)} .swift, {len(headers)} .h, {len(modulemaps)} .modulemap"
            )

        sources_dir = config.path(config.sources_dir)
        try:
            self.bindings = self._relocate_bindings(
                sources, headers, modulemaps[0], sources_dir, device_target
            )
        except OSError as e:
            raise BuildError(f"Failed to copy generated bindings: {e}")
        return self.bindings

    def _relocate_bindings(self, sources, headers, modulemap, sources_dir, device_target):
        os.makedirs(sources_dir, exist_ok=True)
        bindings = []
        for src in sources:
            dst = sources_dir / src.name
            shutil.copy2(src, dst)
            bindings.append(Artifact(ArtifactKind.BINDING_SOURCE, dst, device_target))
            print(f"  {src.name} -> {dst}")

        headers_dir = self.config.headers_path
        if headers_dir.exists():
            shutil.rmtree(headers_dir)
        os.makedirs(headers_dir)
        for header in headers:
            shutil.copy2(header, headers_dir / header.name)
        shutil.copy2(modulemap, headers_dir / "module.modulemap")
        print(f"  {modulemap.name} -> {headers_dir / 'module.modulemap'}")
        return bindings

    def create_xcframework(self):
        libraries = [lib for lib in (self.device_lib, self.simulator_lib) if lib]
        self.xcframework = make_xcframework(
            libraries, self.config.headers_path, self.config.xcframework_path
        )
        print(f"  Created {self.xcframework.path}")
        return self.xcframework

    def select_artifact_source(self):
        """Point Package.swift at the local XCFramework, or back at the release."""
        manifest = SPMManifest(self.config)
        if not manifest.path.is_file():
            print(f"  ℹ️  {manifest.path.name} not found, skipping")
            return False
        return manifest.set_local_flag(self.config.use_local_artifact_source)

    def compress(self):
        self.compressed = zip_xcframework(self.xcframework, self.config.xcframework_zip_path)
        return self.compressed

    def update_manifest(self):
        checksum = calculate_checksum(self.compressed.path)
        self.record = ReleaseRecord(version=self.version, checksum=checksum, tag=str(self.version))
        SPMManifest(self.config).update_release(self.record)
        return self.record

    def publish(self):
        return ReleasePublisher(self.config, verbose=self.verbose).publish(
            self.record, self.compressed
        )

    def pipeline(self) -> Pipeline:
        pipeline = Pipeline(f"build ios ({self.mode.value})")
        if self.release:
            pipeline.add("validate version", self.check_version)
        pipeline.add("clean", self.clean)
        pipeline.add("build static libraries", self.build_targets)
        pipeline.add("combine libraries", self.combine_libraries)
        pipeline.add("generate bindings", self.generate_bindings)
        pipeline.add("create xcframework", self.create_xcframework)
        if self.release:
            pipeline.add("compress xcframework", self.compress)
            pipeline.add("update package manifest", self.update_manifest)
            pipeline.add("publish release", self.publish)
        else:
            pipeline.add("select artifact source", self.select_artifact_source)
        return pipeline


def main(config, release=False, jobs=1, verbose=False):
    """
    Run the iOS pipeline.

    Returns:
        CliResult of the pipeline run
    """
    print(f"==================build_ios (mode: {'release' if release else 'debug'}, jobs: {jobs})========================")
    return IOSBuild(config, release=release, jobs=jobs, verbose=verbose).pipeline().run()
