#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
# mobship
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
Build utility functions shared by the platform build scripts.

This module wraps the external tools of the pipeline:
- cargo, for per-target compilation of the native core
- lipo, for combining single-architecture archives into a fat archive
- xcodebuild, for assembling the XCFramework
- zipfile, for compressing the XCFramework for distribution

Every function either returns the Artifact it produced or raises the
pipeline error matching the failing tool, carrying its output verbatim.
"""

import os
import platform
import shutil
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from mobship.utils.cmd.cmd_util import run_or_raise
from mobship.utils.errors import BuildError, PackagingError
from mobship.utils.models import AGGREGATE, Artifact, ArtifactKind, BuildMode


def system_is_windows():
    return platform.system().lower() == "windows"


def cargo_build_cmd(config, target):
    cmd = [
        "cargo",
        "build",
        "--lib",
        "--manifest-path",
        str(config.path(config.native_manifest)),
        "--target",
        target.triple,
    ]
    if target.mode == BuildMode.RELEASE:
        cmd.append("--release")
    cmd.extend(config.cargo_args)
    return cmd


def cargo_build(config, target, verbose=False):
    """
    Compile the native core for one target triple.

    Args:
        config: PipelineConfig
        target: BuildTarget to compile

    Returns:
        Artifact: the staticLibrary produced for the target

    Raises:
        BuildError: cargo exited non-zero, or produced no static archive
    """
    run_or_raise(
        cargo_build_cmd(config, target),
        BuildError,
        f"cargo build {target.triple}",
        cwd=str(config.project_dir),
        verbose=verbose,
    )
    lib_path = config.cargo_out_dir(target) / config.static_lib_name
    if not lib_path.is_file():
        raise BuildError(f"cargo build {target.triple} did not produce {lib_path}")
    return Artifact(ArtifactKind.STATIC_LIBRARY, lib_path, target)


def cargo_build_all(config, targets, jobs=1, verbose=False):
    """
    Build every target of a platform before returning.

    With jobs > 1 the targets are compiled concurrently. All of them are
    awaited either way; the first failure (in target order) is raised.

    Returns:
        list: staticLibrary Artifacts in target order
    """
    if not targets:
        raise BuildError("No build targets configured")

    if jobs is None or jobs <= 1 or len(targets) == 1:
        return [cargo_build(config, target, verbose) for target in targets]

    print(f"  Building {len(targets)} targets with {jobs} parallel jobs")
    results = {}
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = {
            executor.submit(cargo_build, config, target, verbose): target
            for target in targets
        }
        for future in as_completed(futures):
            target = futures[future]
            try:
                results[target] = future.result()
                print(f"  ✅ {target.triple}")
            except BuildError as e:
                results[target] = e
                print(f"  ❌ {target.triple}")

    for target in targets:
        if isinstance(results[target], BuildError):
            raise results[target]
    return [results[target] for target in targets]


def lipo_libs(src_libs, dst_dir, lib_name):
    """
    Create a fat static archive from single-architecture archives.

    Args:
        src_libs: staticLibrary Artifacts of the same platform class
        dst_dir: Output directory, created when missing
        lib_name: File name of the fat archive

    Returns:
        Artifact: the fatStaticLibrary

    Raises:
        PackagingError: fewer than two distinct architectures, an existing
            output from a previous run, or lipo failure
    """
    triples = {lib.produced_by.triple for lib in src_libs}
    if len(src_libs) < 2 or len(triples) != len(src_libs):
        raise PackagingError(
            "A fat library needs two or more archives for distinct architectures, "
            f"got: {', '.join(sorted(triples)) or 'none'}"
        )

    dst_dir = Path(dst_dir)
    dst_lib = dst_dir / lib_name
    if dst_lib.exists():
        raise PackagingError(
            f"{dst_lib} already exists from a previous build, run `mobship clean` first"
        )
    os.makedirs(dst_dir, exist_ok=True)

    cmd = ["lipo", "-create"] + [str(lib.path) for lib in src_libs] + ["-output", str(dst_lib)]
    run_or_raise(cmd, PackagingError, "lipo")
    return Artifact(ArtifactKind.FAT_STATIC_LIBRARY, dst_lib, AGGREGATE)


def make_xcframework(libraries, headers_dir, dst_framework):
    """
    Create an XCFramework from device and simulator static archives.

    Any stale bundle at dst_framework is removed first.

    Args:
        libraries: staticLibrary / fatStaticLibrary Artifacts, one per
            platform variant (device, simulator)
        headers_dir: Directory of generated headers and module.modulemap
        dst_framework: Destination .xcframework path

    Returns:
        Artifact: the frameworkBundle
    """
    dst_framework = Path(dst_framework)
    if dst_framework.exists():
        shutil.rmtree(dst_framework)

    cmd = ["xcodebuild", "-create-xcframework"]
    for lib in libraries:
        cmd += ["-library", str(lib.path), "-headers", str(headers_dir)]
    cmd += ["-output", str(dst_framework)]
    run_or_raise(cmd, PackagingError, "xcodebuild -create-xcframework")
    return Artifact(ArtifactKind.FRAMEWORK_BUNDLE, dst_framework, AGGREGATE)


def zip_xcframework(xcframework, output_path):
    """
    Compress an XCFramework for distribution.

    Entries are stored relative to the bundle's parent directory so the
    archive unpacks to <name>.xcframework/.

    Returns:
        Artifact: the compressedBundle
    """
    src = Path(xcframework.path)
    output_path = Path(output_path)
    if output_path.exists():
        output_path.unlink()

    try:
        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for root, dirs, files in os.walk(src):
                dirs.sort()
                for file in sorted(files):
                    file_path = Path(root) / file
                    zipf.write(file_path, file_path.relative_to(src.parent))
    except OSError as e:
        raise PackagingError(f"Failed to compress {src}: {e}")

    print(f"  Created {output_path}")
    return Artifact(ArtifactKind.COMPRESSED_BUNDLE, output_path, AGGREGATE)
