# src/artifact_downloader/cli.py

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from importlib.metadata import PackageNotFoundError, version
from typing import Awaitable, Callable, Dict, List, Optional

from rich.console import Console

from artifact_downloader import log_utils
from artifact_downloader.chooser import PickChooser
from artifact_downloader.config import Settings, load_settings
from artifact_downloader.constants import (
    APP_DISTRIBUTION_PROVIDER,
    APP_NAME,
    APP_STORE_CONNECT_PROVIDER,
    ARTIFACT_TYPES,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_SEARCH_LIMIT,
    OUTPUT_FORMATS,
    PLATFORM_CHOICES,
    PROVIDER_DISPLAY_NAMES,
    PROVIDER_NAMES,
)
from artifact_downloader.discovery import (
    discover_apps,
    filter_by_platform,
    list_provider_apps,
)
from artifact_downloader.downloader import ArtifactDownloader
from artifact_downloader.exceptions import (
    ArtifactDownloaderError,
    AuthenticationError,
    ConfigurationError,
    ConfigValidationError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from artifact_downloader.formatter import (
    apps_to_json,
    artifacts_to_json,
    build_app_table,
    build_artifact_table,
)
from artifact_downloader.models import AppSummary, SearchFilter
from artifact_downloader.providers import ArtifactProvider, create_provider
from artifact_downloader.resolver import ArtifactResolver, parse_target
from artifact_downloader.version import format_version, parse_version

CommandHandler = Callable[[argparse.Namespace, Settings], Awaitable[int]]

_MISSING_KEYS: Dict[str, Callable[[Settings], List[str]]] = {
    APP_STORE_CONNECT_PROVIDER: Settings.missing_app_store_connect_keys,
    APP_DISTRIBUTION_PROVIDER: Settings.missing_firebase_keys,
}


def get_version() -> str:
    """Return the installed package version, or "unknown" when not installed."""
    try:
        return version(APP_NAME)
    except PackageNotFoundError:
        return "unknown"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value}") from None
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _print_apps(apps: List[AppSummary], output_format: str) -> None:
    if output_format == "json":
        print(apps_to_json(apps))
    elif apps:
        Console().print(build_app_table(apps))
    else:
        log_utils.logger.info("No apps found.")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _run_search(args: argparse.Namespace, settings: Settings) -> int:
    wanted_version: Optional[str] = None
    build_number = args.build_number
    if args.version:
        parsed = parse_version(args.version)
        wanted_version = parsed.version
        build_number = build_number or parsed.build_number

    search_filter = SearchFilter(
        app_id=args.app_id,
        version=wanted_version,
        build_number=build_number,
        artifact_type=args.artifact_type,
        limit=args.limit,
    )
    async with create_provider(args.source, settings) as provider:
        artifacts = await provider.search(search_filter)

    if args.format == "json":
        print(artifacts_to_json(artifacts))
    elif artifacts:
        Console().print(build_artifact_table(artifacts))
    else:
        log_utils.logger.info(f"No artifacts found for {args.app_id}.")
    return 0


async def _run_download(args: argparse.Namespace, settings: Settings) -> int:
    target = parse_target(args.version_or_id, args.app_id, args.artifact_type)
    log_utils.logger.debug(f"Resolving {target}")

    async with create_provider(args.source, settings) as provider:
        artifact = await ArtifactResolver(provider, PickChooser()).resolve(target)
        log_utils.logger.info(
            f"Found {artifact.artifact_type} artifact "
            f"{format_version(artifact.version, artifact.build_number)}: "
            f"{artifact.file_name}"
        )
        await ArtifactDownloader(provider).download(artifact, args.output)
    return 0


async def _run_list_apps(args: argparse.Namespace, settings: Settings) -> int:
    if args.source != "all":
        async with create_provider(args.source, settings) as provider:
            apps = await list_provider_apps(provider)
        _print_apps(filter_by_platform(apps, args.platform), args.format)
        return 0

    async with AsyncExitStack() as stack:
        providers: List[ArtifactProvider] = []
        for name in PROVIDER_NAMES:
            missing = _MISSING_KEYS[name](settings)
            if missing:
                log_utils.logger.warning(
                    f"Skipping {PROVIDER_DISPLAY_NAMES[name]}: "
                    f"missing {', '.join(missing)}"
                )
                continue
            providers.append(
                await stack.enter_async_context(create_provider(name, settings))
            )

        if not providers:
            raise ConfigValidationError(
                "No providers are configured",
                details="Run 'artifacts-cli auth-check' to see what is missing",
            )
        result = await discover_apps(providers)

    _print_apps(filter_by_platform(result.apps, args.platform), args.format)
    return 0


async def _check_provider(name: str, settings: Settings, verbose: bool) -> bool:
    """
    Report configuration and connectivity for one provider.

    Returns:
        bool: True if the provider is configured and a strict app listing succeeds.
    """
    display_name = PROVIDER_DISPLAY_NAMES[name]
    missing = _MISSING_KEYS[name](settings)
    if missing:
        log_utils.logger.error(
            f"{display_name}: configuration missing or incomplete "
            f"(missing: {', '.join(missing)})"
        )
        return False
    log_utils.logger.info(f"{display_name}: configuration complete")

    try:
        async with create_provider(name, settings) as provider:
            apps = await provider.list_apps()
    except ConfigurationError as e:
        log_utils.logger.error(f"{display_name}: {e}")
        return False
    except AuthenticationError as e:
        log_utils.logger.error(
            f"{display_name}: authentication failed, check credentials ({e})"
        )
        return False
    except PermissionDeniedError as e:
        log_utils.logger.error(
            f"{display_name}: permission denied, check API key permissions ({e})"
        )
        return False
    except ResourceNotFoundError as e:
        log_utils.logger.error(f"{display_name}: project or resource not found ({e})")
        return False
    except ArtifactDownloaderError as e:
        log_utils.logger.error(f"{display_name}: connection test failed ({e})")
        return False

    log_utils.logger.info(f"{display_name}: connection OK, {len(apps)} apps found")
    if not apps:
        log_utils.logger.warning(f"{display_name}: no apps visible to these credentials")
    elif verbose:
        for app in apps:
            log_utils.logger.info(f"  {app.name} ({app.id}, {app.platform or '-'})")
    return True


async def _run_auth_check(args: argparse.Namespace, settings: Settings) -> int:
    names = PROVIDER_NAMES if args.source == "all" else (args.source,)
    results = [await _check_provider(name, settings, args.verbose) for name in names]
    return 0 if all(results) else 1


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artifacts-cli",
        description="Search and download build artifacts from App Store Connect "
        "and Firebase App Distribution",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Lets --debug also be given after the subcommand without resetting it
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--debug",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")
    app_id_help = (
        "App identifier (Xcode Cloud product name for app-store-connect, "
        "bundle/package ID for app-distribution)"
    )

    search_parser = subparsers.add_parser(
        "search",
        aliases=["list", "ls"],
        parents=[common],
        help="Search artifacts",
    )
    search_parser.add_argument("--app-id", required=True, help=app_id_help)
    search_parser.add_argument(
        "--from", dest="source", required=True, choices=PROVIDER_NAMES
    )
    search_parser.add_argument(
        "--limit",
        type=_positive_int,
        default=DEFAULT_SEARCH_LIMIT,
        help="Maximum number of results",
    )
    search_parser.add_argument("--version", help="Filter by version")
    search_parser.add_argument("--build-number", help="Filter by build number")
    search_parser.add_argument(
        "--artifact-type", choices=ARTIFACT_TYPES, help="Filter by artifact type"
    )
    search_parser.add_argument("--format", choices=OUTPUT_FORMATS, default="table")
    search_parser.set_defaults(handler=_run_search)

    download_parser = subparsers.add_parser(
        "download", aliases=["dl"], parents=[common], help="Download an artifact"
    )
    download_parser.add_argument(
        "version_or_id",
        metavar="version-or-id",
        help='Version (e.g. v1.0.0+20, "1.0.0(20)"), artifact ID, or "latest"',
    )
    download_parser.add_argument("--app-id", required=True, help=app_id_help)
    download_parser.add_argument(
        "--from", dest="source", required=True, choices=PROVIDER_NAMES
    )
    download_parser.add_argument(
        "--output",
        default=DEFAULT_OUTPUT_PATH,
        help="Output directory or file path",
    )
    download_parser.add_argument(
        "--artifact-type", choices=ARTIFACT_TYPES, help="Artifact type to download"
    )
    download_parser.set_defaults(handler=_run_download)

    list_apps_parser = subparsers.add_parser(
        "list-apps",
        aliases=["list-products"],
        parents=[common],
        help="List apps and Xcode Cloud products",
    )
    list_apps_parser.add_argument(
        "--from", dest="source", choices=("all",) + PROVIDER_NAMES, default="all"
    )
    list_apps_parser.add_argument(
        "--platform", choices=PLATFORM_CHOICES, default="all"
    )
    list_apps_parser.add_argument("--format", choices=OUTPUT_FORMATS, default="table")
    list_apps_parser.set_defaults(handler=_run_list_apps)

    auth_parser = subparsers.add_parser(
        "auth-check",
        parents=[common],
        help="Check authentication configuration and connectivity",
    )
    auth_parser.add_argument(
        "--from", dest="source", choices=("all",) + PROVIDER_NAMES, default="all"
    )
    auth_parser.add_argument(
        "--verbose", action="store_true", help="Show the apps that were found"
    )
    auth_parser.set_defaults(handler=_run_auth_check)

    subparsers.add_parser(
        "version", parents=[common], help="Display artifact-downloader version"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the artifacts-cli command.

    Parses arguments, loads settings and runs the selected subcommand.

    Returns:
        int: Process exit code, 0 on success and 1 on any handled error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        log_utils.set_log_level("DEBUG")

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "version":
        log_utils.logger.info(f"artifact-downloader v{get_version()}")
        return 0

    handler: CommandHandler = args.handler
    try:
        settings = load_settings()
        if settings.log_level and not args.debug:
            log_utils.set_log_level(settings.log_level)
        return asyncio.run(handler(args, settings))
    except ArtifactDownloaderError as e:
        log_utils.logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        log_utils.logger.info("Cancelled.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
