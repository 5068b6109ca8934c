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

import argparse
import os
import sys
import time
from dataclasses import replace

from mobship.build_scripts import build_android, build_ios
from mobship.utils.config import load_config
from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace
from mobship.utils.errors import MobshipError
from mobship.utils.pipeline import report_failure


class Build(CliCommand):
    def description(self) -> str:
        return """Build the native core and package it for a mobile platform.

SUPPORTED PLATFORMS:
    ios         XCFramework (device + fat simulator library) with Swift bindings
    android     AAR assembled by the Gradle project

PIPELINE:
    ios         clean -> cargo build (every target) -> lipo -> uniffi-bindgen
                -> xcodebuild -create-xcframework
                --release adds: version check -> zip -> checksum + Package.swift
                -> commit, tag, push -> draft GitHub release
    android     clean -> gradlew assembleDebug / assembleRelease

EXAMPLES:
    mobship build ios                  # Debug XCFramework
    mobship build ios --local          # ...and point Package.swift at it
    mobship build ios -j 3             # Build the cargo targets in parallel
    mobship build ios --release        # Build and publish the release of Cargo.toml's version
    mobship build android --release    # Release AAR

REQUIREMENTS:
    iOS:        rustup targets, Xcode command line tools, gh (for --release)
    Android:    ANDROID_HOME, ANDROID_NDK_HOME, JAVA_HOME
        """

    def get_target_list(self) -> list:
        return ["ios", "android"]

    def cli(self) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="mobship build",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "target",
            metavar=f"{self.get_target_list()}",
            type=str,
            choices=self.get_target_list(),
        )
        parser.add_argument(
            "--release",
            action="store_true",
            help="Build in release mode; for ios also publish the release",
        )
        parser.add_argument(
            "-j", "--jobs",
            type=int,
            default=1,
            help="Number of cargo targets to build in parallel (default: 1)",
        )
        parser.add_argument(
            "--local",
            action="store_true",
            help="Point Package.swift at the locally built XCFramework (ignored with --release)",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Print the output of successful tool invocations",
        )
        module_name = os.path.splitext(os.path.basename(__file__))[0]
        input_argv = [x for x in sys.argv[1:] if x != module_name]
        args, unknown = parser.parse_known_args(input_argv)
        return args

    def _print_build_time(self, start_time: float):
        """Print the build time in a human-readable format."""
        elapsed = time.time() - start_time
        if elapsed < 60:
            print(f"\n⏱ Build completed in {elapsed:.2f} seconds")
        elif elapsed < 3600:
            minutes = int(elapsed // 60)
            seconds = elapsed % 60
            print(f"\n⏱ Build completed in {minutes} min {seconds:.1f} sec")
        else:
            hours = int(elapsed // 3600)
            minutes = int((elapsed % 3600) // 60)
            seconds = elapsed % 60
            print(f"\n⏱ Build completed in {hours} hr {minutes} min {seconds:.0f} sec")

    def exec(self, context: CliContext, args: CliNameSpace):
        start_time = time.time()
        try:
            config = load_config(context.project_dir)
        except MobshipError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        if args.local:
            if args.release:
                print("⚠️  --local is ignored for releases, Package.swift will use the hosted XCFramework")
            else:
                config = replace(config, use_local_artifact_source=True)

        if args.target == "ios":
            result = build_ios.main(
                config, release=args.release, jobs=args.jobs, verbose=args.verbose
            )
        else:
            result = build_android.main(config, release=args.release, verbose=args.verbose)

        if result.is_failure():
            report_failure(result)
            sys.exit(1)
        self._print_build_time(start_time)
