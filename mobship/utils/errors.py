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
Error taxonomy of the release pipeline.

None of these errors are recovered locally. A failing stage stops the
pipeline and the command exits non-zero, printing ``output`` unchanged.
"""


class MobshipError(Exception):
    """Base class for pipeline failures"""

    def __init__(self, message, output=""):
        super().__init__(message)
        self.message = message
        self.output = output or ""

    def __str__(self):
        return self.message


class ConfigurationError(MobshipError):
    """Malformed version string or unusable configuration"""
    pass


class OrderingError(MobshipError):
    """Candidate version is not strictly greater than the latest tag"""
    pass


class BuildError(MobshipError):
    """Compiler, toolchain or binding generator exited non-zero"""
    pass


class PackagingError(MobshipError):
    """Bundle assembly or manifest rewrite failed"""
    pass


class PublicationError(MobshipError):
    """Version control or hosted release operation failed"""
    pass
