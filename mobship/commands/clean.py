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

import argparse
import os
import shutil
import sys

from mobship.utils.cmd.cmd_util import run_or_raise
from mobship.utils.config import load_config
from mobship.utils.context.command import CliCommand
from mobship.utils.context.context import CliContext
from mobship.utils.context.namespace import CliNameSpace
from mobship.utils.errors import BuildError, MobshipError


class Clean(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to clean build artifacts and caches.

        Cleans the following directories:
        - target/ios/                  # iOS staging (XCFramework, headers, bindings)
        - target/ios-simulator-fat/    # Fat simulator library
        - android/build/, android/.gradle/, android/*/build/
        - cargo's whole target/ directory (all only, via `cargo clean`)

        Examples:
            mobship clean              # Clean everything (with confirmation)
            mobship clean ios          # Clean only iOS outputs
            mobship clean --dry-run    # Preview what will be cleaned
        """

    def get_target_list(self) -> list:
        return ["all", "ios", "android"]

    def cli(self) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="mobship clean",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "target",
            nargs='?',
            default="all",
            type=str,
            choices=self.get_target_list(),
            help="Platform to clean (default: all)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be cleaned without actually deleting",
        )
        module_name = os.path.splitext(os.path.basename(__file__))[0]
        input_argv = [x for x in sys.argv[1:] if x != module_name]
        args, unknown = parser.parse_known_args(input_argv)
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        print("Cleaning build artifacts and caches...\n")
        try:
            config = load_config(context.project_dir)
            cleaner = ProjectCleaner(config, dry_run=args.dry_run)
            if args.target == "all":
                cleaner.clean_all()
            else:
                cleaner.clean_platform(args.target)
            cleaner.print_summary()
            cleaner.raise_on_failure()
        except MobshipError as e:
            print(f"\nERROR: {e}")
            if e.output:
                print(e.output.rstrip("\n"))
            sys.exit(1)


class ProjectCleaner:
    def __init__(self, config, dry_run=False):
        self.config = config
        self.project_dir = str(config.project_dir)
        self.dry_run = dry_run
        self.cleaned_dirs = []
        self.cleaned_size = 0
        self.failed_dirs = []

    def get_dir_size(self, path):
        """Get total size of directory in bytes"""
        total_size = 0
        for dirpath, dirnames, filenames in os.walk(path):
            for filename in filenames:
                filepath = os.path.join(dirpath, filename)
                try:
                    total_size += os.path.getsize(filepath)
                except OSError:
                    pass
        return total_size

    def format_size(self, size_bytes):
        """Format bytes to human-readable size"""
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size_bytes < 1024.0:
                return f"{size_bytes:.2f} {unit}"
            size_bytes /= 1024.0
        return f"{size_bytes:.2f} TB"

    def remove_directory(self, dir_path, dir_name=None):
        """Remove a directory and track the result. Missing directories are a no-op."""
        dir_path = str(dir_path)
        if not os.path.isdir(dir_path):
            return False

        size = self.get_dir_size(dir_path)
        display_name = dir_name or os.path.relpath(dir_path, self.project_dir) + "/"

        if self.dry_run:
            print(f"  [DRY RUN] Would remove: {display_name} ({self.format_size(size)})")
            return True

        try:
            shutil.rmtree(dir_path)
            self.cleaned_dirs.append(display_name)
            self.cleaned_size += size
            print(f"  ✅ Removed: {display_name} ({self.format_size(size)})")
            return True
        except OSError as e:
            self.failed_dirs.append((display_name, str(e)))
            print(f"  ❌ Failed to remove {display_name}: {e}")
            return False

    def confirm_clean(self, message):
        """Ask user for confirmation"""
        try:
            response = input(f"{message} (y/N): ").strip().lower()
        except EOFError:
            # Closed stdin counts as no
            print()
            return False
        return response in ['y', 'yes']

    def clean_ios(self):
        """Clean iOS staging and fat simulator library directories"""
        print("\n" + "="*60)
        print("  Cleaning iOS build outputs")
        print("="*60)

        self.remove_directory(self.config.staging_path)
        self.remove_directory(self.config.fat_simulator_path)

    def clean_android(self):
        """Clean Android build caches"""
        print("\n" + "="*60)
        print("  Cleaning Android build caches")
        print("="*60)

        android_dir = self.config.path(self.config.android_project_dir)

        if not android_dir.is_dir():
            print(f"  ℹ️  {self.config.android_project_dir}/ directory does not exist")
            return

        self.remove_directory(android_dir / "build")
        self.remove_directory(android_dir / ".gradle")

        # android/*/build/ for all subprojects
        for item in sorted(os.listdir(android_dir)):
            item_path = android_dir / item
            if item_path.is_dir() and item not in ['build', '.gradle']:
                self.remove_directory(item_path / "build")

    def clean_cargo(self):
        """Purge cargo's whole build cache"""
        print("\n" + "="*60)
        print("  Cleaning cargo build cache")
        print("="*60)

        cmd = [
            "cargo", "clean",
            "--manifest-path", str(self.config.path(self.config.native_manifest)),
        ]
        if self.dry_run:
            print(f"  [DRY RUN] Would run: {' '.join(cmd)}")
            return
        run_or_raise(cmd, BuildError, "cargo clean", cwd=self.project_dir)

    def clean_platform(self, platform):
        """Clean specific platform outputs"""
        if platform == "ios":
            self.clean_ios()
        elif platform == "android":
            self.clean_android()

    def clean_all(self):
        """
        Clean all build artifacts of every platform and the cargo cache.

        Returns:
            bool: False if the user did not confirm and nothing was removed
        """
        print("\n" + "="*60)
        print("  Cleaning ALL build artifacts and caches")
        print("="*60)

        if not self.dry_run:
            if not self.confirm_clean("\n⚠️  This will remove ALL build artifacts. Continue?"):
                print("  ⏭️  Aborted")
                return False

        self.clean_ios()
        self.clean_android()
        self.clean_cargo()
        return True

    def raise_on_failure(self):
        if self.failed_dirs:
            names = ", ".join(name for name, _ in self.failed_dirs)
            details = "\n".join(f"{name}: {error}" for name, error in self.failed_dirs)
            raise BuildError(f"Failed to clean {names}", output=details)

    def print_summary(self):
        """Print summary of cleaning operation"""
        print("\n" + "="*60)
        print("  Cleaning Summary")
        print("="*60)

        if self.dry_run:
            print("  [DRY RUN MODE - No files were actually deleted]")

        if self.cleaned_dirs:
            print(f"  ✅ Successfully cleaned {len(self.cleaned_dirs)} directories:")
            for dir_name in self.cleaned_dirs:
                print(f"     - {dir_name}")
            print(f"\n  💾 Total space freed: {self.format_size(self.cleaned_size)}")
        else:
            print("  ℹ️  No directories were cleaned")

        if self.failed_dirs:
            print(f"\n  ❌ Failed to clean {len(self.failed_dirs)} directories:")
            for dir_name, error in self.failed_dirs:
                print(f"     - {dir_name}: {error}")

        print("="*60 + "\n")
