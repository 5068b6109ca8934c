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
import sys
from functools import partial

from mobship.utils.config import load_config
from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace
from mobship.utils.errors import MobshipError
from mobship.utils.manifest import (
    kotlin_string_const,
    rewrite_file,
    set_toml_package_version,
    substitute_once,
)
from mobship.utils.version import check_release_version


def update_versions(config, version: str) -> list:
    """
    Rewrite the version declarations of the native and Android manifests.

    Returns:
        list: relative paths of the files whose content changed
    """
    edits = [
        (config.native_manifest, partial(set_toml_package_version, version=version)),
    ]
    if config.path(config.android_version_file).is_file():
        edits.append((
            config.android_version_file,
            lambda text: substitute_once(
                text, kotlin_string_const(config.android_version_var), version,
                config.android_version_var,
            ),
        ))
    else:
        print(f"  ℹ️  {config.android_version_file} not found, skipping")

    changed = []
    for relative, transform in edits:
        if rewrite_file(config.path(relative), transform):
            changed.append(relative)
            print(f"  ✅ {relative}: {version}")
        else:
            print(f"  ℹ️  {relative} already at {version}")
    return changed


class UpdateVersions(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to bump the library version.

        Validates the version against the latest git tag, then rewrites
        [package].version in Cargo.toml and packageVersion in the Android
        GradleConfig.kt.

        Examples:
            mobship update-versions 0.3.0
        """

    def cli(self) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="mobship update-versions",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument("version", type=str, help="New version, e.g. 1.2.3")
        input_argv = [x for x in sys.argv[1:] if x != "update-versions"]
        args, unknown = parser.parse_known_args(input_argv)
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            version = check_release_version(args.version, context.project_dir)
            config = load_config(context.project_dir)
            update_versions(config, str(version))
        except MobshipError as e:
            print(f"ERROR: {e}")
            if e.output:
                print(e.output.rstrip("\n"))
            sys.exit(1)
