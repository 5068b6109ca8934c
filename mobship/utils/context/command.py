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

from mobship.utils.context.namespace import CliNameSpace
from mobship.utils.context.context import CliContext


# Base class of every subcommand. A subcommand lives in
# mobship/commands/<name>.py and its class name is the capitalized name.
class CliCommand:
    def description(self) -> str:
        raise NotImplementedError

    def cli(self) -> CliNameSpace:
        raise NotImplementedError

    def exec(self, context: CliContext, args: CliNameSpace):
        raise NotImplementedError
