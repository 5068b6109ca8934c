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
import importlib
import os
import sys

from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]
PACKAGE_NAME = os.path.basename(SCRIPT_PATH)


def command_module_name(command: str) -> str:
    return command.replace("-", "_")


def command_class_name(command: str) -> str:
    # "validate-version" -> "ValidateVersion"
    return "".join(part.capitalize() for part in command.split("-"))


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """mobship - Mobile release pipeline for native core libraries

Builds a Rust core for iOS (XCFramework + Swift package) and Android (AAR),
generates bindings, and governs versions and releases.

USAGE:
    mobship <command> [options]

COMMANDS:
    build             Build for a platform (ios, android), --release to publish
    clean             Clean build outputs (ios, android, all)
    update-versions   Bump the version in Cargo.toml and the Android config
    validate-version  Check a version against the latest git tag
    check             Check that the required tools are installed

EXAMPLES:
    mobship build ios                   # Debug XCFramework
    mobship build ios --release         # Build and publish a release
    mobship validate-version 0.3.0
    mobship clean all

For more information on a specific command:
    mobship <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(command)[0].replace("_", "-"))
        return sorted(arr)

    def _parser(self, add_help) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="mobship",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs=None if add_help else '?',
            choices=self.get_command_list(),
        )
        return parser

    def cli(self) -> CliNameSpace:
        # Help for the main command only (mobship --help), not subcommands (mobship build --help)
        if len(sys.argv) == 2 and sys.argv[1] in ['--help', '-h']:
            self._parser(add_help=True).print_help()
            sys.exit(0)

        # parse only known args - this will NOT consume --help if present
        args, unknown = self._parser(add_help=False).parse_known_args(namespace=CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print("ERROR: No command specified\n")
            self._parser(add_help=True).print_help()
            sys.exit(1)

        module = importlib.import_module(
            f"{PACKAGE_NAME}.commands.{command_module_name(args.subcommand)}"
        )
        klass = getattr(module, command_class_name(args.subcommand))
        sub_cmd = klass()
        sub_cmd.exec(context, sub_cmd.cli())


def main():
    cmd = Cli()
    cmd.exec(CliContext(), cmd.cli())


if __name__ == "__main__":
    main()
