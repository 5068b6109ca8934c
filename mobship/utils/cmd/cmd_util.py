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

import os
import subprocess
import sys


def decode_bytes(input: bytes) -> str:
    """Decode tool output, falling back to GBK for Chinese Windows consoles."""
    try:
        return bytes.decode(input, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(input, "GBK")


def format_command(command) -> str:
    if isinstance(command, str):
        return command
    return " ".join(str(x) for x in command)


def exec_command(command, cwd=None, env=None):
    """
    Execute an external command and capture its output.

    Strings run through the shell, sequences run directly. stderr is merged
    into stdout so the caller gets the tool's diagnostic in one piece. No
    timeout is imposed here; long builds are bounded by the tools themselves.

    Args:
        command: Shell command string or argument list
        cwd: Working directory (default: current directory)
        env: Extra environment variables merged over os.environ

    Returns:
        tuple: (exit_code, output_message)
    """
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)
    try:
        compile_popen = subprocess.Popen(
            command,
            shell=isinstance(command, str),
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        return 127, f"{e.strerror}: {e.filename}\n"
    stdout, _ = compile_popen.communicate()
    return compile_popen.returncode, decode_bytes(stdout or b"")


def run_or_raise(command, error_cls, stage, cwd=None, env=None, verbose=False):
    """
    Run a command, raising error_cls with the raw output on non-zero exit.

    Returns:
        str: The captured output of the command
    """
    print(f"  $ {format_command(command)}")
    sys.stdout.flush()
    err_code, output = exec_command(command, cwd=cwd, env=env)
    if err_code != 0:
        raise error_cls(
            f"{stage} failed (exit code {err_code}): {format_command(command)}",
            output=output,
        )
    if verbose and output:
        print(output)
    return output
