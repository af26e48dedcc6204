"""Command-line entrypoint: wire adapters into the use cases and run them."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from wrsbuild.adapters.dism import DismImaging
from wrsbuild.adapters.history_xml import XmlHistoryStore
from wrsbuild.adapters.image_locator import FileSystemImageSource
from wrsbuild.adapters.package_manifest import ExpandManifestExtractor
from wrsbuild.adapters.robocopy import RobocopyCopier
from wrsbuild.adapters.settings_file import resolve_settings
from wrsbuild.domain.errors import SettingsError
from wrsbuild.domain.settings import BuildSettings
from wrsbuild.usecases.build_repair_source import EXIT_FAILURES, EXIT_OK, BuildRepairSource
from wrsbuild.usecases.discover_updates import DiscoverUpdates
from wrsbuild.usecases.install_update import InstallUpdate
from wrsbuild.usecases.merge_delta import MergeDelta
from wrsbuild.usecases.preview_repair_source import PreviewRepairSource
from wrsbuild.usecases.service_image import ServiceImage
from wrsbuild.utils.logging import configure_root, level_name

EXIT_SETTINGS_ERROR = 2

log = logging.getLogger("wrsbuild.cli")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI args for a build run."""
    parser = argparse.ArgumentParser(
        prog="wrsbuild",
        description="Apply pending updates to offline OS images and merge the changed "
        "component store into a versioned repair source.",
    )
    parser.add_argument("--config", type=Path, help="JSON settings file")
    parser.add_argument("--image-root", dest="image_root", help="Folder with one sub-folder per image")
    parser.add_argument("--wrs-root", dest="wrs_root", help="Root of the repair-source output tree")
    parser.add_argument("--mount-root", dest="mount_root", help="Scratch folder for image mounts")
    parser.add_argument("--index", dest="image_index", type=int, help="Image index inside each WIM")
    parser.add_argument(
        "--only",
        action="append",
        default=[],
        metavar="FOLDER",
        help="Process only this image folder (repeatable)",
    )
    parser.add_argument("--log-file", dest="log_file", type=Path, help="Also write the log to this file")
    parser.add_argument("--log-level", dest="log_level", help="Log level, e.g. DEBUG or INFO")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List images and pending updates without mounting or writing anything",
    )
    return parser.parse_args(argv)


def build_runtime(settings: BuildSettings) -> BuildRepairSource:
    """Wire production adapters into the build use case."""
    imaging = DismImaging(settings.dism_executable)
    history_store = XmlHistoryStore()
    image_source = FileSystemImageSource(settings, imaging)
    copier = RobocopyCopier(
        settings.robocopy_executable,
        retries=settings.copy_retries,
        wait_s=settings.copy_wait_s,
    )
    service = ServiceImage(
        imaging=imaging,
        history_store=history_store,
        merge=MergeDelta(copier),
        install=InstallUpdate(imaging),
        discover=DiscoverUpdates(
            image_source=image_source,
            manifest_port=ExpandManifestExtractor(settings.expand_executable),
            history_store=history_store,
        ),
        wrs_root=Path(settings.wrs_root),
    )
    return BuildRepairSource(image_source=image_source, service_image=service)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    args = _parse_args(argv)
    overrides = {
        "image_root": args.image_root,
        "wrs_root": args.wrs_root,
        "mount_root": args.mount_root,
        "image_index": args.image_index,
        "only": args.only,
        "log_file": args.log_file,
        "log_level": args.log_level,
    }
    try:
        settings = resolve_settings(config_path=args.config, overrides=overrides)
    except SettingsError as exc:
        configure_root(args.log_level or logging.INFO)
        log.error("%s: %s", exc.message, exc.hint or "no details")
        return EXIT_SETTINGS_ERROR

    level = configure_root(settings.log_level or logging.INFO, settings.log_file)
    log.debug("Effective log level %s", level_name(level))

    if args.dry_run:
        imaging = DismImaging(settings.dism_executable)
        preview = PreviewRepairSource(
            image_source=FileSystemImageSource(settings, imaging),
            history_store=XmlHistoryStore(),
        )
        previews = preview()
        for image_preview in previews:
            for line in image_preview.lines():
                print(line)
        return EXIT_FAILURES if any(item.problems for item in previews) else EXIT_OK

    report = build_runtime(settings)()
    return report.exit_code


__all__ = ["build_runtime", "main"]
