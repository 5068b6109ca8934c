#!/usr/bin/env python3
"""
Tests for Package.swift, Cargo.toml and GradleConfig.kt rewriting.

Run with: python3 -m pytest tests/test_manifest.py
"""

import hashlib
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mobship.commands.update_versions import update_versions
from mobship.utils.apple.spm import SPMManifest, calculate_checksum
from mobship.utils.config import config_from_dict
from mobship.utils.errors import PackagingError
from mobship.utils.manifest import (
    kotlin_string_const,
    set_toml_package_version,
    substitute_once,
    swift_string_let,
)
from mobship.utils.models import ReleaseRecord
from mobship.utils.version import validate

PACKAGE_SWIFT = '''// swift-tools-version: 6.0
import PackageDescription

// Never push to remote with this flag set to true
let useLocalFramework = true
let releaseTag = "0.1.0"
let releaseTagSuffix = "keep-me"
let releaseChecksum = "0543e91a3af84d6da3bb29c31e0766dbce20df521ab0ca4a927e0aad60026f93"

let binaryTarget: Target = if useLocalFramework {
    .binaryTarget(name: "AzanFFI", path: "./target/ios/libazan-rs.xcframework")
} else {
    .binaryTarget(
        name: "AzanFFI",
        url: "https://github.com/ibad-al-rahman/azan/releases/download/\\(releaseTag)/libazan-rs.xcframework.zip",
        checksum: releaseChecksum
    )
}
'''

CARGO_TOML = '''[package]
name = "azan"
version = "0.1.0"
edition = "2021"

[lib]
crate-type = ["lib", "staticlib", "cdylib"]

[dependencies]
chrono = { version = "0.4" }

[dependencies.serde]
version = "1.0"
'''

GRADLE_CONFIG = '''object GradleConfigs {
    const val compileSdk = 34
    const val ndkVersion = "26.1.10909125"
    const val packageVersion = "0.1.0"
}
'''


class ManifestTestCase(unittest.TestCase):

    def setUp(self):
        env_patcher = patch.dict(os.environ)
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        os.environ.pop("MOBSHIP_USE_LOCAL_FRAMEWORK", None)
        self.tmp = tempfile.TemporaryDirectory()
        self.project = Path(self.tmp.name)
        (self.project / "Package.swift").write_text(PACKAGE_SWIFT, encoding="utf-8")
        (self.project / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
        gradle = self.project / "android/buildSrc/src/main/kotlin/GradleConfig.kt"
        gradle.parent.mkdir(parents=True)
        gradle.write_text(GRADLE_CONFIG, encoding="utf-8")
        self.config = config_from_dict({}, self.project)

    def tearDown(self):
        self.tmp.cleanup()

    def read(self, name):
        return (self.project / name).read_text(encoding="utf-8")


class TestSPMManifest(ManifestTestCase):

    def test_update_release_rewrites_only_the_named_declarations(self):
        record = ReleaseRecord(validate("0.2.0"), "ab" * 32, "0.2.0")
        SPMManifest(self.config).update_release(record)
        text = self.read("Package.swift")
        self.assertIn('let releaseTag = "0.2.0"\n', text)
        self.assertIn('let releaseChecksum = "%s"\n' % ("ab" * 32), text)
        self.assertIn('let releaseTagSuffix = "keep-me"\n', text)
        self.assertIn("let useLocalFramework = true\n", text)

        expected = PACKAGE_SWIFT.replace('"0.1.0"', '"0.2.0"').replace(
            "0543e91a3af84d6da3bb29c31e0766dbce20df521ab0ca4a927e0aad60026f93", "ab" * 32
        )
        self.assertEqual(text, expected)

    def test_update_release_is_idempotent(self):
        manifest = SPMManifest(self.config)
        record = ReleaseRecord(validate("0.2.0"), "cd" * 32, "0.2.0")
        self.assertTrue(manifest.update_release(record))
        once = self.read("Package.swift")
        self.assertFalse(manifest.update_release(record))
        self.assertEqual(self.read("Package.swift"), once)
        self.assertEqual(manifest.read_release(), ("0.2.0", "cd" * 32))

    def test_set_local_flag(self):
        manifest = SPMManifest(self.config)
        manifest.set_local_flag(False)
        self.assertIn("let useLocalFramework = false\n", self.read("Package.swift"))
        manifest.set_local_flag(True)
        self.assertEqual(self.read("Package.swift"), PACKAGE_SWIFT)

    def test_missing_declaration(self):
        (self.project / "Package.swift").write_text("let other = 1\n", encoding="utf-8")
        with self.assertRaises(PackagingError):
            SPMManifest(self.config).update_release(
                ReleaseRecord(validate("0.2.0"), "00" * 32, "0.2.0")
            )

    def test_duplicate_declaration(self):
        text = 'let releaseTag = "1"\nlet releaseTag = "2"\n'
        with self.assertRaises(PackagingError):
            substitute_once(text, swift_string_let("releaseTag"), "3", "releaseTag")

    def test_calculate_checksum(self):
        path = self.project / "bundle.zip"
        path.write_bytes(b"x" * 10000)
        self.assertEqual(calculate_checksum(path), hashlib.sha256(b"x" * 10000).hexdigest())

    def test_calculate_checksum_missing_bundle(self):
        with self.assertRaises(PackagingError):
            calculate_checksum(self.project / "missing.zip")

    def test_write_failure_is_a_packaging_error(self):
        real_open = open

        def read_only_open(file, mode="r", *args, **kwargs):
            if "w" in mode:
                raise PermissionError(f"Permission denied: '{file}'")
            return real_open(file, mode, *args, **kwargs)

        with patch("builtins.open", side_effect=read_only_open):
            with self.assertRaises(PackagingError):
                SPMManifest(self.config).update_release(
                    ReleaseRecord(validate("0.2.0"), "00" * 32, "0.2.0")
                )
        self.assertIn('let releaseTag = "0.1.0"', self.read("Package.swift"))


class TestVersionFiles(ManifestTestCase):

    def test_cargo_package_version_only(self):
        text = set_toml_package_version(CARGO_TOML, "0.3.0")
        self.assertIn('name = "azan"\nversion = "0.3.0"\n', text)
        self.assertIn('chrono = { version = "0.4" }', text)
        self.assertIn('[dependencies.serde]\nversion = "1.0"\n', text)

    def test_cargo_without_package_table(self):
        with self.assertRaises(PackagingError):
            set_toml_package_version('[workspace]\nmembers = []\n', "0.3.0")

    def test_kotlin_const(self):
        text = substitute_once(GRADLE_CONFIG, kotlin_string_const("packageVersion"), "0.3.0",
                               "packageVersion")
        self.assertIn('const val packageVersion = "0.3.0"', text)
        self.assertIn('const val ndkVersion = "26.1.10909125"', text)

    def test_update_versions(self):
        changed = update_versions(self.config, "0.3.0")
        self.assertEqual(changed, ["Cargo.toml", "android/buildSrc/src/main/kotlin/GradleConfig.kt"])
        self.assertEqual(self.config.native_version(), "0.3.0")
        self.assertIn('packageVersion = "0.3.0"', self.read("android/buildSrc/src/main/kotlin/GradleConfig.kt"))
        self.assertEqual(update_versions(self.config, "0.3.0"), [])

    def test_update_versions_without_android(self):
        os.remove(self.project / "android/buildSrc/src/main/kotlin/GradleConfig.kt")
        self.assertEqual(update_versions(self.config, "0.4.0"), ["Cargo.toml"])


if __name__ == "__main__":
    unittest.main()
