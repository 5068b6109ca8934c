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

"""Swift Package Manager manifest handling for mobship."""

from .spm import SPMManifest, calculate_checksum

__all__ = ['SPMManifest', 'calculate_checksum']
