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

"""Release pipeline for native core libraries shipped to iOS and Android."""

__version__ = "0.1.0"
