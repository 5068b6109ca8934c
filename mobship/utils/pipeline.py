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
Fail-fast sequencing of pipeline stages.

A stage is a callable that returns a value or raises a MobshipError. The
pipeline runs its stages in order and stops at the first failure; later
stages never start.
"""

import sys
import time

from mobship.utils.context.result import CliResult


def format_elapsed_time(elapsed: float) -> str:
    """Format elapsed time in a human-readable format."""
    if elapsed < 60:
        return f"{elapsed:.1f}s"
    elif elapsed < 3600:
        minutes = int(elapsed // 60)
        seconds = elapsed % 60
        return f"{minutes}m {seconds:.0f}s"
    else:
        hours = int(elapsed // 3600)
        minutes = int((elapsed % 3600) // 60)
        return f"{hours}h {minutes}m"


class PipelineStage:
    def __init__(self, name, func, args=(), kwargs=None):
        self.name = name
        self.func = func
        self.args = args
        self.kwargs = kwargs or {}

    def run(self) -> CliResult:
        return CliResult.from_call(self.func, *self.args, **self.kwargs)


class Pipeline:
    def __init__(self, name):
        self.name = name
        self.stages = []
        self.completed = []
        self.failed_stage = None

    def add(self, name, func, *args, **kwargs) -> "Pipeline":
        self.stages.append(PipelineStage(name, func, args, kwargs))
        return self

    def stage_names(self) -> list:
        return [stage.name for stage in self.stages]

    def run(self) -> CliResult:
        """
        Run all stages in order.

        Returns:
            CliResult: value is a dict of stage name to stage return value on
            success; error is the first MobshipError raised, with its
            ``stage`` attribute set to the failing stage's name.
        """
        start_time = time.time()
        values = {}
        for index, stage in enumerate(self.stages, start=1):
            print("\n" + "=" * 60)
            print(f"  [{index}/{len(self.stages)}] {self.name}: {stage.name}")
            print("=" * 60)
            sys.stdout.flush()

            result = stage.run()
            if result.is_failure():
                error = result.get_error()
                error.stage = stage.name
                self.failed_stage = stage.name
                print(f"  ❌ {stage.name} failed")
                return result

            values[stage.name] = result.get_value()
            self.completed.append(stage.name)
            print(f"  ✅ {stage.name}")

        print(f"\n⏱ {self.name} completed in {format_elapsed_time(time.time() - start_time)}")
        return CliResult(value=values)


def report_failure(result: CliResult):
    """Print a failed pipeline result: stage, message, then raw tool output."""
    error = result.get_error()
    stage = getattr(error, "stage", None)
    prefix = f"{stage}: " if stage else ""
    print(f"\nERROR: {prefix}{error}")
    output = getattr(error, "output", "")
    if output:
        print(output.rstrip("\n"))
