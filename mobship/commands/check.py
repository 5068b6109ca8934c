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
import shutil
import subprocess
import sys

from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace

# Tools each pipeline invokes
REQUIRED_TOOLS = {
    "ios": ["cargo", "rustup", "lipo", "xcodebuild"],
    "android": ["java"],
    "release": ["git", "gh"],
}


class Check(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to check that the external tools of a pipeline are installed.

        Examples:
            mobship check ios          # Check iOS toolchain
            mobship check android      # Check Android toolchain
            mobship check all          # Check everything, release tools included
        """

    def get_target_list(self) -> list:
        return ["all", "ios", "android", "release"]

    def cli(self) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="mobship check",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "target",
            metavar=f"{self.get_target_list()}",
            type=str,
            choices=self.get_target_list(),
            nargs="?",
            default="all",
            help="Pipeline to check (default: all)",
        )
        module_name = os.path.splitext(os.path.basename(__file__))[0]
        input_argv = [x for x in sys.argv[1:] if x != module_name]
        args, unknown = parser.parse_known_args(input_argv)
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        print(f"🔍 Checking {args.target} tools...\n")
        checker = ToolChecker()
        targets = ["ios", "android", "release"] if args.target == "all" else [args.target]
        for target in targets:
            checker.check(target)
        checker.print_summary()
        if checker.errors:
            sys.exit(1)


class ToolChecker:
    def __init__(self):
        self.errors = []

    def run_command(self, cmd):
        """Run a command and return (success, first output line)"""
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            return False, str(e)
        lines = result.stdout.strip().splitlines()
        return result.returncode == 0, lines[0] if lines else ""

    def check_command_exists(self, command):
        if shutil.which(command) is None:
            print(f"  ❌ {command}: not found in PATH")
            self.errors.append(command)
            return False
        success, version = self.run_command([command, "--version"])
        print(f"  ✅ {command}: {version if success else 'found'}")
        return True

    def check(self, target):
        print("=" * 60)
        print(f"  {target}")
        print("=" * 60)
        for tool in REQUIRED_TOOLS[target]:
            self.check_command_exists(tool)
        if target == "android":
            for var in ("ANDROID_HOME", "ANDROID_NDK_HOME", "JAVA_HOME"):
                if os.environ.get(var):
                    print(f"  ✅ {var}: {os.environ[var]}")
                else:
                    print(f"  ⚠️  {var} is not set")
        print()

    def print_summary(self):
        if self.errors:
            print(f"❌ Missing tools: {', '.join(self.errors)}")
        else:
            print("✅ All tools found")
