# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..core.config import LibraryConfig, load_config_from_path
from ..core.library import LicenseLibrary
from ..core.listing import LibraryListing, list_library
from ..core.normalizer import decode_bytes
from ..core.scanner import scan_text


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level licenselib CLI argument parser.

    Returns:
        argparse.ArgumentParser: Parser with ``list`` and ``scan`` subcommands.
    """
    parser = argparse.ArgumentParser(prog="licenselib", description="License template catalog")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g., DEBUG, INFO, WARNING); overrides the config file's [logging] level.",
    )
    parser.add_argument("-c", "--config", help="Path to config file (TOML or JSON).")
    parser.add_argument("--spdx-dir", type=Path, help="Override resources.spdx_dir.")
    parser.add_argument(
        "--custom-dir",
        type=Path,
        action="append",
        help="Override resources.custom_dirs (repeatable, applied in order).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_p = subparsers.add_parser("list", help="List licenses and exceptions in the library.")
    list_p.add_argument("--json", action="store_true", help="Emit JSON instead of a text table.")

    scan_p = subparsers.add_parser("scan", help="Scan files for license text.")
    scan_p.add_argument("files", nargs="+", type=Path, help="Files to scan.")

    return parser


def _load_config(args: argparse.Namespace) -> LibraryConfig:
    """Load the config file (if any) and apply path overrides from the command line."""
    cfg = load_config_from_path(args.config) if args.config else LibraryConfig()
    if args.spdx_dir is not None:
        cfg.resources.spdx_dir = args.spdx_dir
    if args.custom_dir:
        cfg.resources.custom_dirs = list(args.custom_dir)
    cfg.validate()
    return cfg


def _format_listing(listing: LibraryListing) -> str:
    lines = [f"SPDX License List version: {listing.spdx_version or 'n/a'}"]
    sections = (
        ("Licenses", listing.licenses),
        ("Deprecated licenses", listing.deprecated_licenses),
        ("Exceptions", listing.exceptions),
        ("Deprecated exceptions", listing.deprecated_exceptions),
    )
    for title, rows in sections:
        lines.append("")
        lines.append(f"{title} ({len(rows)}):")
        for row in rows:
            flags = []
            if getattr(row, "is_osi_approved", False):
                flags.append("OSI")
            if getattr(row, "is_fsf_libre", False):
                flags.append("FSF")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            lines.append(f"  {row.id:<40} {row.name} ({row.num_templates} template(s)){suffix}")
    return "\n".join(lines)


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected subcommand and return a process exit code."""
    cfg = _load_config(args)
    if args.log_level:
        cfg.logging.level = args.log_level
    cfg.logging.apply()
    library = LicenseLibrary.build(cfg)

    if args.command == "list":
        listing = list_library(library)
        if args.json:
            print(json.dumps(listing.to_dict(), indent=2))
        else:
            print(_format_listing(listing))
        return 0

    if args.command == "scan":
        report = {}
        for path in args.files:
            text = decode_bytes(path.read_bytes())
            report[str(path)] = scan_text(library, text).to_dict()
        print(json.dumps(report, indent=2))
        return 0

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the licenselib command-line interface.

    Args:
        argv (Sequence[str] | None): Argument strings to parse instead of
            ``sys.argv[1:]``. Primarily useful for tests.

    Returns:
        int: 0 on success, 1 on any failure.
    """
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        return _dispatch(args)
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
