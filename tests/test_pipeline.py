#!/usr/bin/env python3
"""
Tests for fail-fast sequencing and the iOS / Android pipelines.

External tools are replaced by fakes that create the files the real tools
would produce.

Run with: python3 -m pytest tests/test_pipeline.py
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mobship.build_scripts.build_android import AndroidBuild
from mobship.build_scripts.build_ios import IOSBuild
from mobship.build_scripts.build_utils import cargo_build_all, lipo_libs
from mobship.utils.apple.spm import calculate_checksum
from mobship.utils.config import config_from_dict
from mobship.utils.errors import BuildError, PackagingError
from mobship.utils.models import ArtifactKind, BuildMode, Platform
from mobship.utils.pipeline import Pipeline
from mobship.utils.version import SemanticVersion

PACKAGE_SWIFT = '''let useLocalFramework = false
let releaseTag = "0.1.0"
let releaseChecksum = "0000"
'''


class FakeTools:
    """Stands in for run_or_raise, producing each tool's output files."""

    def __init__(self, project, fail_on=None):
        self.project = Path(project)
        self.fail_on = fail_on
        self.commands = []

    def __call__(self, cmd, error_cls, stage, cwd=None, env=None, verbose=False):
        self.commands.append(list(cmd))
        if self.fail_on and self.fail_on in cmd:
            raise error_cls(f"{stage} failed (exit code 101)", output="error[E0425]: cannot find value\n")
        if cmd[0] == "cargo" and "build" in cmd:
            triple = cmd[cmd.index("--target") + 1]
            mode = "release" if "--release" in cmd else "debug"
            out = self.project / "target" / triple / mode
            out.mkdir(parents=True, exist_ok=True)
            (out / "libazan.a").write_bytes(triple.encode())
            (out / "libazan.dylib").write_bytes(b"dylib")
        elif cmd[0] == "lipo":
            Path(cmd[cmd.index("-output") + 1]).write_bytes(b"fat")
        elif cmd[0] == "xcodebuild":
            out = Path(cmd[cmd.index("-output") + 1])
            out.mkdir(parents=True)
            (out / "Info.plist").write_text("<plist/>")
        elif "generate" in cmd:
            out = Path(cmd[cmd.index("--out-dir") + 1])
            (out / "Azan.swift").write_text("// generated\n")
            (out / "AzanFFI.h").write_text("// header\n")
            (out / "AzanFFI.modulemap").write_text("module AzanFFI {}\n")
        return ""

    def tools(self):
        return [cmd[0] for cmd in self.commands]


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        env_patcher = patch.dict(os.environ)
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        os.environ.pop("MOBSHIP_USE_LOCAL_FRAMEWORK", None)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.project = Path(self.tmp.name)
        (self.project / "Cargo.toml").write_text('[package]\nname = "azan"\nversion = "0.2.0"\n')
        (self.project / "Package.swift").write_text(PACKAGE_SWIFT)
        self.config = config_from_dict({}, self.project)
        self.project = self.config.project_dir

    def patch_tools(self, fake):
        for target in ("mobship.build_scripts.build_utils.run_or_raise",
                       "mobship.build_scripts.build_ios.run_or_raise"):
            patcher = patch(target, side_effect=fake)
            patcher.start()
            self.addCleanup(patcher.stop)


class TestPipeline(unittest.TestCase):

    def test_stops_at_first_failure(self):
        calls = []

        def fail():
            calls.append("build")
            raise BuildError("cargo build failed", output="raw output")

        pipeline = Pipeline("test")
        pipeline.add("clean", calls.append, "clean")
        pipeline.add("build", fail)
        pipeline.add("package", calls.append, "package")
        result = pipeline.run()

        self.assertTrue(result.is_failure())
        self.assertEqual(calls, ["clean", "build"])
        self.assertEqual(pipeline.completed, ["clean"])
        self.assertEqual(pipeline.failed_stage, "build")
        self.assertEqual(result.get_error().stage, "build")
        self.assertEqual(result.get_error().output, "raw output")

    def test_success_collects_values(self):
        pipeline = Pipeline("test").add("one", lambda: 1).add("two", lambda: 2)
        result = pipeline.run()
        self.assertTrue(result.is_success())
        self.assertEqual(result.get_value(), {"one": 1, "two": 2})


class TestBuildUtils(PipelineTestCase):

    def test_parallel_build_awaits_every_target(self):
        fake = FakeTools(self.project, fail_on="aarch64-apple-ios-sim")
        self.patch_tools(fake)
        targets = self.config.build_targets(Platform.IOS, BuildMode.DEBUG)
        with self.assertRaises(BuildError) as ctx:
            cargo_build_all(self.config, targets, jobs=3)
        self.assertEqual(len(fake.commands), 3)
        self.assertIn("E0425", ctx.exception.output)

    def test_combiner_refuses_existing_output(self):
        self.patch_tools(FakeTools(self.project))
        targets = [t for t in self.config.build_targets(Platform.IOS, BuildMode.DEBUG) if t.simulator]
        libs = cargo_build_all(self.config, targets)
        fat = lipo_libs(libs, self.config.fat_simulator_path, "libazan.a")
        self.assertEqual(fat.kind, ArtifactKind.FAT_STATIC_LIBRARY)
        with self.assertRaises(PackagingError):
            lipo_libs(libs, self.config.fat_simulator_path, "libazan.a")

    def test_combiner_needs_two_architectures(self):
        self.patch_tools(FakeTools(self.project))
        targets = [t for t in self.config.build_targets(Platform.IOS, BuildMode.DEBUG) if t.simulator]
        libs = cargo_build_all(self.config, targets[:1])
        with self.assertRaises(PackagingError):
            lipo_libs(libs, self.config.fat_simulator_path, "libazan.a")


class TestIOSBuild(PipelineTestCase):

    def test_debug_build(self):
        fake = FakeTools(self.project)
        self.patch_tools(fake)
        # A stale bundle from an earlier run is cleaned first
        stale = self.config.fat_simulator_path / "libazan.a"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"stale")

        build = IOSBuild(self.config)
        result = build.pipeline().run()

        self.assertTrue(result.is_success(), result.get_error())
        self.assertEqual(fake.tools(), ["cargo", "cargo", "cargo", "lipo", "cargo", "xcodebuild"])
        self.assertTrue((self.project / "apple/Sources/Azan/Azan.swift").is_file())
        self.assertTrue((self.config.headers_path / "module.modulemap").is_file())
        self.assertTrue((self.config.headers_path / "AzanFFI.h").is_file())
        self.assertTrue(self.config.xcframework_path.is_dir())
        self.assertFalse(self.config.xcframework_zip_path.exists())
        self.assertEqual(build.simulator_lib.path.read_bytes(), b"fat")

    def test_local_flag_written_for_debug_build(self):
        from dataclasses import replace

        self.patch_tools(FakeTools(self.project))
        config = replace(self.config, use_local_artifact_source=True)
        result = IOSBuild(config).pipeline().run()
        self.assertTrue(result.is_success(), result.get_error())
        self.assertIn("let useLocalFramework = true", (self.project / "Package.swift").read_text())

    @patch("mobship.build_scripts.build_ios.ReleasePublisher")
    @patch("mobship.build_scripts.build_ios.check_release_version")
    def test_release_build(self, mock_check, mock_publisher):
        mock_check.return_value = SemanticVersion(0, 2, 0)
        fake = FakeTools(self.project)
        self.patch_tools(fake)

        build = IOSBuild(self.config, release=True)
        result = build.pipeline().run()

        self.assertTrue(result.is_success(), result.get_error())
        mock_check.assert_called_once_with("0.2.0", str(self.project))
        self.assertTrue(all("--release" in cmd for cmd in fake.commands if cmd[:2] == ["cargo", "build"]))
        checksum = calculate_checksum(self.config.xcframework_zip_path)
        text = (self.project / "Package.swift").read_text()
        self.assertIn('let releaseTag = "0.2.0"', text)
        self.assertIn(f'let releaseChecksum = "{checksum}"', text)
        mock_publisher.return_value.publish.assert_called_once_with(build.record, build.compressed)
        self.assertEqual(build.record.tag, "0.2.0")

    @patch("mobship.build_scripts.build_ios.ReleasePublisher")
    @patch("mobship.build_scripts.build_ios.check_release_version")
    def test_failed_build_stops_release(self, mock_check, mock_publisher):
        mock_check.return_value = SemanticVersion(0, 2, 0)
        fake = FakeTools(self.project, fail_on="x86_64-apple-ios")
        self.patch_tools(fake)

        pipeline = IOSBuild(self.config, release=True).pipeline()
        result = pipeline.run()

        self.assertTrue(result.is_failure())
        self.assertEqual(pipeline.failed_stage, "build static libraries")
        self.assertNotIn("lipo", fake.tools())
        self.assertNotIn("xcodebuild", fake.tools())
        mock_publisher.assert_not_called()
        self.assertEqual((self.project / "Package.swift").read_text(), PACKAGE_SWIFT)

    @patch("mobship.build_scripts.build_ios.ReleasePublisher")
    def test_ordering_failure_stops_before_clean(self, mock_publisher):
        from mobship.utils.errors import OrderingError

        self.patch_tools(FakeTools(self.project))
        with patch("mobship.build_scripts.build_ios.check_release_version",
                   side_effect=OrderingError("Version 0.2.0 must be greater than the latest tag 0.2.0")):
            pipeline = IOSBuild(self.config, release=True).pipeline()
            result = pipeline.run()
        self.assertTrue(result.is_failure())
        self.assertEqual(pipeline.completed, [])
        mock_publisher.assert_not_called()

    def test_missing_dylib_fails_binding_generation(self):
        fake = FakeTools(self.project)

        def no_dylib(cmd, *args, **kwargs):
            result = fake(cmd, *args, **kwargs)
            for dylib in self.project.glob("target/*/debug/libazan.dylib"):
                dylib.unlink()
            return result

        self.patch_tools(no_dylib)
        pipeline = IOSBuild(self.config).pipeline()
        result = pipeline.run()
        self.assertTrue(result.is_failure())
        self.assertEqual(pipeline.failed_stage, "generate bindings")

    def test_binding_copy_failure_is_a_build_error(self):
        self.patch_tools(FakeTools(self.project))
        pipeline = IOSBuild(self.config).pipeline()
        with patch("mobship.build_scripts.build_ios.shutil.copy2",
                   side_effect=PermissionError("Permission denied")):
            result = pipeline.run()
        self.assertTrue(result.is_failure())
        self.assertIsInstance(result.error, BuildError)
        self.assertIn("Permission denied", result.error.message)
        self.assertEqual(pipeline.failed_stage, "generate bindings")


class TestAndroidBuild(PipelineTestCase):

    def setUp(self):
        super().setUp()
        self.android = self.project / "android"
        self.android.mkdir()
        (self.android / "gradlew").write_text("#!/bin/sh\n")

    @patch("mobship.build_scripts.build_android.system_is_windows", return_value=False)
    @patch("mobship.build_scripts.build_android.run_or_raise")
    def test_release_assemble(self, mock_run, _):
        def assemble(cmd, *args, **kwargs):
            aar = self.android / "azan/build/outputs/aar/azan-release.aar"
            aar.parent.mkdir(parents=True)
            aar.write_bytes(b"aar")
            return ""

        mock_run.side_effect = assemble
        build = AndroidBuild(self.config, release=True)
        result = build.pipeline().run()

        self.assertTrue(result.is_success(), result.get_error())
        self.assertEqual(mock_run.call_args[0][0], [str(self.android / "gradlew"), "assembleRelease"])
        self.assertEqual([a.kind for a in build.archives], [ArtifactKind.ARCHIVE_BUNDLE])

    @patch("mobship.build_scripts.build_android.system_is_windows", return_value=False)
    @patch("mobship.build_scripts.build_android.run_or_raise")
    def test_gradle_failure(self, mock_run, _):
        mock_run.side_effect = BuildError("gradle assembleDebug failed (exit code 1)", output="FAILURE\n")
        pipeline = AndroidBuild(self.config).pipeline()
        result = pipeline.run()
        self.assertTrue(result.is_failure())
        self.assertEqual(pipeline.failed_stage, "assembleDebug")
        self.assertEqual(result.get_error().output, "FAILURE\n")


if __name__ == "__main__":
    unittest.main()
