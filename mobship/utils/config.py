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
Pipeline configuration handler for mobship.

Reads mobship.toml from the project root. Every key is optional; the
defaults describe a Rust crate exposed through uniffi, shipped as a Swift
package (Package.swift at the root) and a Gradle project under android/.
Values support ${VAR_NAME} and $VAR_NAME environment expansion.
"""

import os
import re
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from mobship.utils.errors import ConfigurationError
from mobship.utils.models import BuildMode, BuildTarget, Platform

CONFIG_FILE_NAME = "mobship.toml"

# Environment switch for pointing Package.swift at the local XCFramework
LOCAL_FRAMEWORK_ENV = "MOBSHIP_USE_LOCAL_FRAMEWORK"


@dataclass(frozen=True)
class PipelineConfig:
    """Process-wide settings, read once per invocation."""
    project_dir: Path
    use_local_artifact_source: bool = False
    library_name: str = "azan"
    module_name: str = "Azan"
    native_manifest: str = "Cargo.toml"
    lock_file: str = "Cargo.lock"
    cargo_args: List[str] = field(default_factory=list)
    # iOS
    framework_name: str = "libazan-rs"
    staging_dir: str = "target/ios"
    fat_simulator_output_dir: str = "target/ios-simulator-fat"
    device_targets: List[str] = field(default_factory=lambda: ["aarch64-apple-ios"])
    simulator_targets: List[str] = field(
        default_factory=lambda: ["aarch64-apple-ios-sim", "x86_64-apple-ios"]
    )
    sources_dir: str = "apple/Sources/Azan"
    package_manifest: str = "Package.swift"
    bindgen_command: List[str] = field(
        default_factory=lambda: ["cargo", "run", "--bin", "uniffi-bindgen"]
    )
    bindgen_language: str = "swift"
    release_tag_var: str = "releaseTag"
    checksum_var: str = "releaseChecksum"
    local_flag_var: str = "useLocalFramework"
    # Android
    android_project_dir: str = "android"
    android_version_file: str = "android/buildSrc/src/main/kotlin/GradleConfig.kt"
    android_version_var: str = "packageVersion"
    android_extra_tasks: List[str] = field(default_factory=list)
    # Release
    remote: str = "origin"

    def path(self, relative: str) -> Path:
        return self.project_dir / relative

    @property
    def staging_path(self) -> Path:
        return self.path(self.staging_dir)

    @property
    def fat_simulator_path(self) -> Path:
        return self.path(self.fat_simulator_output_dir)

    @property
    def headers_path(self) -> Path:
        return self.staging_path / "headers"

    @property
    def bindings_path(self) -> Path:
        return self.staging_path / "bindings"

    @property
    def xcframework_path(self) -> Path:
        return self.staging_path / f"{self.framework_name}.xcframework"

    @property
    def xcframework_zip_path(self) -> Path:
        return self.staging_path / f"{self.framework_name}.xcframework.zip"

    @property
    def static_lib_name(self) -> str:
        return f"lib{self.library_name}.a"

    @property
    def shared_lib_name(self) -> str:
        return f"lib{self.library_name}.dylib"

    def cargo_out_dir(self, target: BuildTarget) -> Path:
        return self.path("target") / target.triple / target.mode.value

    def build_targets(self, platform: Platform, mode: BuildMode) -> List[BuildTarget]:
        """Target matrix of a platform for one build mode."""
        if platform != Platform.IOS:
            # Gradle drives the Android native build itself
            return []
        targets = [BuildTarget(platform, triple, mode) for triple in self.device_targets]
        targets += [
            BuildTarget(platform, triple, mode, simulator=True)
            for triple in self.simulator_targets
        ]
        return targets

    def with_remote_artifact_source(self) -> "PipelineConfig":
        return replace(self, use_local_artifact_source=False)

    def native_version(self) -> str:
        """The [package].version declared by the native manifest."""
        manifest = self.path(self.native_manifest)
        try:
            with open(manifest, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(f"Failed to read {manifest}: {e}")
        version = data.get("package", {}).get("version")
        if not version:
            raise ConfigurationError(f"No [package].version in {manifest}")
        if not isinstance(version, str):
            # e.g. version.workspace = true
            raise ConfigurationError(
                f"[package].version in {manifest} is not a version string: {version!r}"
            )
        return version


def _expand_env(value: Any) -> Any:
    """
    Expand environment variables in configuration values.

    Supports ${VAR_NAME} and $VAR_NAME syntax. Unknown variables are kept.
    """
    if isinstance(value, list):
        return [_expand_env(x) for x in value]
    if not isinstance(value, str):
        return value

    pattern1 = re.compile(r'\$\{([^}]+)\}')
    value = pattern1.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

    pattern2 = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
    value = pattern2.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

    return value


def _env_flag(name: str):
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes")


# (section, key) -> PipelineConfig field
_CONFIG_KEYS = {
    ("project", "library_name"): "library_name",
    ("project", "module_name"): "module_name",
    ("project", "native_manifest"): "native_manifest",
    ("project", "lock_file"): "lock_file",
    ("project", "cargo_args"): "cargo_args",
    ("ios", "framework_name"): "framework_name",
    ("ios", "staging_dir"): "staging_dir",
    ("ios", "fat_simulator_output_dir"): "fat_simulator_output_dir",
    ("ios", "device_targets"): "device_targets",
    ("ios", "simulator_targets"): "simulator_targets",
    ("ios", "sources_dir"): "sources_dir",
    ("ios", "package_manifest"): "package_manifest",
    ("ios", "use_local_framework"): "use_local_artifact_source",
    ("ios", "bindgen_command"): "bindgen_command",
    ("ios", "bindgen_language"): "bindgen_language",
    ("ios", "release_tag_var"): "release_tag_var",
    ("ios", "checksum_var"): "checksum_var",
    ("ios", "local_flag_var"): "local_flag_var",
    ("android", "project_dir"): "android_project_dir",
    ("android", "version_file"): "android_version_file",
    ("android", "version_var"): "android_version_var",
    ("android", "extra_tasks"): "android_extra_tasks",
    ("release", "remote"): "remote",
}


def config_from_dict(data: Dict[str, Any], project_dir) -> PipelineConfig:
    """Build a PipelineConfig from parsed mobship.toml content."""
    values = {}
    for (section, key), attr in _CONFIG_KEYS.items():
        section_data = data.get(section, {})
        if not isinstance(section_data, dict):
            raise ConfigurationError(f"[{section}] must be a table in {CONFIG_FILE_NAME}")
        if key in section_data:
            values[attr] = _expand_env(section_data[key])

    local_override = _env_flag(LOCAL_FRAMEWORK_ENV)
    if local_override is not None:
        values["use_local_artifact_source"] = local_override

    if "device_targets" in values and not values["device_targets"]:
        raise ConfigurationError("[ios].device_targets must list at least one target")

    return PipelineConfig(project_dir=Path(project_dir).resolve(), **values)


def load_config(project_dir=".") -> PipelineConfig:
    """
    Load mobship.toml from project_dir, falling back to defaults.

    Raises:
        ConfigurationError: the file exists but is not valid TOML
    """
    config_path = Path(project_dir) / CONFIG_FILE_NAME
    data = {}
    if config_path.is_file():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Failed to load {config_path}: {e}")
    return config_from_dict(data, project_dir)
