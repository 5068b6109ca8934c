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

from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace
from mobship.utils.errors import ConfigurationError, MobshipError, OrderingError
from mobship.utils.version import check_release_version


class ValidateVersion(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to check a release version before publishing.

        The version must be MAJOR.MINOR.PATCH (no prefix, no pre-release) and
        strictly greater than the latest git tag (0.0.0 without tags).

        Examples:
            mobship validate-version 0.3.0
        """

    def cli(self) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="mobship validate-version",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument("version", type=str, help="Release version, e.g. 1.2.3")
        input_argv = [x for x in sys.argv[1:] if x != "validate-version"]
        args, unknown = parser.parse_known_args(input_argv)
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            version = check_release_version(args.version, context.project_dir)
        except ConfigurationError as e:
            print(f"❌ Invalid version: {e}")
            sys.exit(1)
        except OrderingError as e:
            print(f"❌ Version ordering: {e}")
            sys.exit(1)
        except MobshipError as e:
            print(f"ERROR: {e}")
            if e.output:
                print(e.output.rstrip("\n"))
            sys.exit(1)
        print(f"✅ Version {version} is valid")
