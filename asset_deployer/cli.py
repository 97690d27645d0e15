"""Command line interface: deploy a build directory after the build completes."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError
from rich.logging import RichHandler

from .cli_progress import DeployProgressDisplay, render_configuration_summary
from .config import DeployOptions, InvalidationOptions
from .orchestrator import FileCollector, S3Uploader
from .utils.rules import GlobRule

logger = logging.getLogger(__name__)

DEPLOYABLE_ENVIRONMENTS = ("production", "staging")


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is
    provided. Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _split_ids(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _check_deploy_environment(env: Dict[str, str]) -> Optional[str]:
    """Return None when deploying is allowed, else the reason it is not."""
    if env.get("DEPLOY_ENABLED", "").lower() != "true":
        return "Not deploying (DEPLOY_ENABLED is not 'true')."
    deploy_env = env.get("DEPLOY_ENV", "")
    if deploy_env not in DEPLOYABLE_ENVIRONMENTS:
        raise CLIError(
            f'Can only deploy in {" and ".join(repr(e) for e in DEPLOYABLE_ENVIRONMENTS)} '
            f"environments (DEPLOY_ENV={deploy_env or '-'})"
        )
    return None


def _build_options(args: argparse.Namespace, env: Dict[str, str]) -> DeployOptions:
    bucket = env.get("AWS_DEPLOYMENT_BUCKET")
    if not bucket:
        raise CLIError("AWS_DEPLOYMENT_BUCKET environment variable is not set")

    s3_options = {}
    if env.get("AWS_CREDENTIALS_PROFILE"):
        s3_options["profile_name"] = env["AWS_CREDENTIALS_PROFILE"]
    if env.get("AWS_REGION"):
        s3_options["region_name"] = env["AWS_REGION"]

    cdn_base = env.get("AWS_DEPLOYMENT_CDN_BASE")
    return DeployOptions(
        directory=args.source,
        include=[GlobRule(p) for p in args.include] or None,
        exclude=[GlobRule(p) for p in args.exclude] or None,
        priority=[GlobRule(p) for p in args.priority] or None,
        html_files=args.html_file,
        base_path=args.base_path or env.get("AWS_DEPLOYMENT_BASE_PATH", ""),
        s3_options=s3_options,
        s3_upload_options={"Bucket": bucket, "ACL": args.acl},
        cdnizer_options={"default_cdn_base": cdn_base} if cdn_base else {},
        cloudfront_invalidate_options=InvalidationOptions(
            distribution_id=_split_ids(env.get("AWS_DEPLOYMENT_CLOUDFRONT_DISTRIBUTION_ID")),
            items=args.invalidate or ["/*"],
        ),
        progress=not args.no_progress,
    )


async def _run_deploy(options: DeployOptions, remove_unused: bool) -> int:
    files = FileCollector.collect_files(options.directory)
    if not files:
        raise CLIError(f"no files found in {options.directory}")

    display = DeployProgressDisplay(show_progress=options.progress)
    start = time.monotonic()
    try:
        async with S3Uploader(options) as uploader:
            display.attach(uploader.events)
            await uploader.upload(files)
            if remove_unused:
                result = await uploader.remove_unused_s3_files(strict=True)
                logger.info(f"Removed {len(result.deleted)} unused object(s)")
    except (BotoCoreError, ClientError) as exc:
        logger.debug("AWS request failed", exc_info=True)
        display.finish(success=False, elapsed=time.monotonic() - start, error=f"AWS: {exc}")
        return 1
    except Exception as exc:
        # user callables (Computed options, base_path_transform) may raise anything
        logger.debug("Deploy failed", exc_info=True)
        display.finish(success=False, elapsed=time.monotonic() - start, error=str(exc))
        return 1

    display.finish(success=True, elapsed=time.monotonic() - start)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asset-deploy",
        description="Publish a build directory to S3 and invalidate CloudFront.",
    )
    parser.add_argument("source", nargs="?", type=Path, help="Build output directory")
    parser.add_argument("-b", "--base-path", default=None, help="Key prefix for every object")
    parser.add_argument(
        "-i", "--include", action="append", default=[], help="Glob of files to upload (repeatable)"
    )
    parser.add_argument(
        "-x", "--exclude", action="append", default=[], help="Glob of files to skip (repeatable)"
    )
    parser.add_argument(
        "-p",
        "--priority",
        action="append",
        default=[],
        help="Glob uploaded before the rest, in the order given (repeatable)",
    )
    parser.add_argument(
        "--html-file",
        action="append",
        default=[],
        help="Extra HTML file (relative to source) to rewrite and upload",
    )
    parser.add_argument(
        "--invalidate",
        action="append",
        default=[],
        help="CloudFront path pattern to invalidate (default: /*)",
    )
    parser.add_argument("--acl", default="private", help="Object ACL (default: private)")
    parser.add_argument(
        "--remove-unused",
        action="store_true",
        help="Delete remote objects that are not part of this deploy",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="asset-deploy")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.source is None:
        parser.print_help()
        return 0

    args.source = Path(args.source).expanduser()
    if not args.source.is_dir():
        print(f"ERROR: source is not a directory: {args.source}", file=sys.stderr)
        return 1

    env = dict(os.environ)
    try:
        reason = _check_deploy_environment(env)
        if reason:
            print(reason, file=sys.stderr)
            return 0
        options = _build_options(args, env)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Source": str(args.source),
            "Environment": env.get("DEPLOY_ENV"),
            "Bucket": options.bucket,
            "Base Path": options.base_path or "(root)",
            "CDN Base": options.cdnizer_options.get("default_cdn_base", "(no rewrite)"),
            "Distributions": ", ".join(options.cloudfront_invalidate_options.distribution_ids) or "-",
            "Profile": env.get("AWS_CREDENTIALS_PROFILE", "default"),
            "Remove Unused": "yes" if args.remove_unused else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(_run_deploy(options, remove_unused=args.remove_unused))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
