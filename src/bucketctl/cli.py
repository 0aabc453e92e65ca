"""CLI entry point for bucketctl."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Protocol, TextIO

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from bucketctl.client import Client
from bucketctl.config import AppConfig, load_config
from bucketctl.errors import BucketCtlError, ConfigurationInvalid
from bucketctl.formatting import utcnow
from bucketctl.logging_config import configure_logging
from bucketctl.models import ErrorResponse

logger = logging.getLogger("bucketctl")

DEFAULT_CONFIG = Path("bucketctl.yaml")


class Confirmer(Protocol):
    """Asks the user to approve an operation."""

    def confirm(self, prompt: str) -> bool: ...


class StdinConfirmer:
    """Prompts on stderr and reads a yes/no answer from stdin."""

    def __init__(self, stdin: TextIO | None = None, stderr: TextIO | None = None) -> None:
        self.stdin = stdin or sys.stdin
        self.stderr = stderr or sys.stderr

    def confirm(self, prompt: str) -> bool:
        self.stderr.write(f"{prompt} (y/N): ")
        self.stderr.flush()
        answer = self.stdin.readline().strip().lower()
        return answer in ("y", "yes")


class AutoConfirmer:
    """Approves everything (``--confirm``)."""

    def confirm(self, prompt: str) -> bool:
        return True


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="bucketctl",
        description="bucketctl - manage objects in an S3-compatible bucket",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: bucketctl.yaml if present)",
    )
    parser.add_argument(
        "-b", "--bucket",
        type=str,
        default=None,
        help="Override bucket name from config",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log progress to stderr",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser("bucket-info", help="Show bucket statistics")
    info_parser.add_argument(
        "--timeout", type=int, default=300,
        help="Timeout in seconds (default: 300)",
    )

    delete_parser = subparsers.add_parser(
        "delete-old",
        help="Delete objects older than a number of days",
        description="Delete objects older than --days. This cannot be undone.",
    )
    delete_parser.add_argument(
        "-d", "--days", type=int, required=True,
        help="Delete objects older than this many days",
    )
    delete_parser.add_argument(
        "-f", "--folder", type=str, default="",
        help="Folder/prefix to search (default: entire bucket)",
    )
    delete_parser.add_argument(
        "--confirm", action="store_true", default=False,
        help="Skip the confirmation prompt",
    )
    delete_parser.add_argument(
        "--dry-run", action="store_true", default=False,
        help="Show what would be deleted without deleting",
    )
    delete_parser.add_argument(
        "--timeout", type=int, default=1800,
        help="Timeout in seconds (default: 1800)",
    )

    upload_parser = subparsers.add_parser(
        "upload",
        help="Upload files or folders",
        description="Upload files or folders, packed into one zip archive unless --no-archive is given.",
    )
    upload_parser.add_argument("paths", nargs="+", help="Files and folders to upload")
    upload_parser.add_argument(
        "-d", "--destination", type=str, default="",
        help="Destination prefix in the bucket (default: bucket root)",
    )
    upload_parser.add_argument(
        "--no-archive", action="store_true", default=False,
        help="Upload files individually instead of as one archive",
    )
    upload_parser.add_argument(
        "--archive-name", type=str, default=None,
        help="Archive file name (default: generated from the inputs and time)",
    )
    upload_parser.add_argument(
        "-e", "--exclude", action="append", default=[], metavar="PATTERN",
        help="Glob pattern for file or folder names to skip (repeatable)",
    )
    upload_parser.add_argument(
        "--confirm", action="store_true", default=False,
        help="Skip the confirmation prompt",
    )
    upload_parser.add_argument(
        "--dry-run", action="store_true", default=False,
        help="Show what would be uploaded without uploading",
    )
    upload_parser.add_argument(
        "--timeout", type=int, default=3600,
        help="Timeout in seconds (default: 3600)",
    )

    download_parser = subparsers.add_parser(
        "download", help="Download the newest object from a folder"
    )
    download_parser.add_argument("folder", help="Folder/prefix to search")
    download_parser.add_argument(
        "-d", "--destination", type=str, default=".",
        help="Local destination directory (default: current directory)",
    )
    download_parser.add_argument(
        "--confirm", action="store_true", default=False,
        help="Skip the confirmation prompt",
    )
    download_parser.add_argument(
        "--timeout", type=int, default=3600,
        help="Timeout in seconds (default: 3600)",
    )

    return parser.parse_args(argv)


def print_json(data: dict[str, Any], stream: TextIO | None = None) -> None:
    """Write a result as indented JSON."""
    print(json.dumps(data, indent=2, default=str), file=stream or sys.stdout)


def print_error(err: BucketCtlError | Exception, command: str, stream: TextIO | None = None) -> None:
    """Write a structured error response."""
    response = ErrorResponse(
        error=getattr(err, "message", None) or str(err),
        code=getattr(err, "code", type(err).__name__),
        timestamp=utcnow(),
        command=command,
    )
    print_json(response.to_dict(), stream)


def _prompt_for(args: argparse.Namespace, bucket: str) -> str | None:
    """Confirmation prompt for the command, or None if it needs none."""
    if args.command == "delete-old" and not args.dry_run:
        where = f" in folder '{args.folder}'" if args.folder else ""
        return (
            f"WARNING: This will permanently delete files older than {args.days} days "
            f"from bucket '{bucket}'{where}. Are you sure?"
        )
    if args.command == "upload" and not args.dry_run:
        mode = "as one archive" if not args.no_archive else "individually"
        destination = args.destination or "bucket root"
        return f"Upload {', '.join(args.paths)} to '{bucket}' ({destination}) {mode}. Continue?"
    if args.command == "download":
        return f"Download the latest file from '{args.folder}' in '{bucket}' to {args.destination}. Continue?"
    return None


async def run_command(args: argparse.Namespace, client: Client) -> dict[str, Any]:
    """Dispatch a parsed command to the client and return the JSON-ready result."""
    if args.command == "bucket-info":
        result = await client.get_bucket_info(bucket=args.bucket, timeout=args.timeout)
    elif args.command == "delete-old":
        result = await client.delete_old_files(
            args.folder,
            args.days,
            dry_run=args.dry_run,
            bucket=args.bucket,
            timeout=args.timeout,
        )
    elif args.command == "upload":
        result = await client.upload_files(
            args.paths,
            destination=args.destination,
            should_archive=not args.no_archive,
            exclude_patterns=args.exclude,
            archive_name=args.archive_name,
            dry_run=args.dry_run,
            bucket=args.bucket,
            timeout=args.timeout,
        )
    elif args.command == "download":
        result = await client.download_latest_file(
            args.folder, args.destination, bucket=args.bucket, timeout=args.timeout
        )
    else:
        raise ValueError(f"unknown command: {args.command}")
    return result.to_dict()


async def _execute(args: argparse.Namespace, config: AppConfig) -> dict[str, Any]:
    async with Client(config.storage) as client:
        return await run_command(args, client)


def _load(args: argparse.Namespace) -> AppConfig:
    config_path = args.config
    if config_path is None and DEFAULT_CONFIG.exists():
        config_path = DEFAULT_CONFIG
    config = load_config(config_path)
    if args.bucket:
        config = config.model_copy(update={"storage": config.storage.with_bucket(args.bucket)})
    return config


def main(argv: list[str] | None = None, confirmer: Confirmer | None = None) -> int:
    """Main entry point for the bucketctl CLI.

    Loads ``.env`` and configuration, asks for confirmation where the
    command needs it, runs the command and prints its JSON result.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
        confirmer: Confirmation capability (default: prompt on stdin).

    Returns:
        Process exit code.
    """
    args = parse_args(argv)
    load_dotenv()

    try:
        config = _load(args)
    except FileNotFoundError:
        print_error(ConfigurationInvalid(f"config file not found: {args.config}"), args.command)
        return 1
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        print_error(ConfigurationInvalid(f"invalid configuration: {exc}"), args.command)
        return 1

    level = args.log_level or ("INFO" if args.verbose else config.logging.level)
    configure_logging(level=level, fmt=args.log_format or config.logging.format)

    try:
        config.require_complete()
    except BucketCtlError as exc:
        print_error(exc, args.command)
        return 1

    prompt = _prompt_for(args, config.storage.bucket_name)
    if prompt and not getattr(args, "confirm", False):
        if not (confirmer or StdinConfirmer()).confirm(prompt):
            print("Operation cancelled.", file=sys.stderr)
            return 0

    logger.info(
        "Running %s on bucket %s",
        args.command,
        config.storage.bucket_name,
        extra={"command": args.command, "bucket": config.storage.bucket_name},
    )
    started = time.monotonic()
    try:
        result = asyncio.run(_execute(args, config))
    except BucketCtlError as exc:
        logger.debug("%s failed", args.command, exc_info=True)
        print_error(exc, args.command)
        return 1

    print_json(result)
    logger.info(
        "%s completed successfully",
        args.command,
        extra={"command": args.command, "duration_ms": round((time.monotonic() - started) * 1000, 2)},
    )
    return 0


def entry_point() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    entry_point()
