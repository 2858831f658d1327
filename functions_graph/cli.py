"""Command-line interface for functions-graph."""

import argparse
import asyncio
import json
import logging
import shutil
import sys

from functions_graph.host_settings import read_host_settings
from functions_graph.project_locator import ProjectLoadError
from functions_graph.traverser import traverse_function_project

logger = logging.getLogger(__name__)

COMMANDS = ("traverse", "host-settings")
GLOBAL_OPTIONS = ("-v", "--verbose", "-h", "--help")


def setup_logging(verbose: bool = False):
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="functions-graph",
        description="Map orchestrators, activities, entities and proxies of a Functions project",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # traverse subcommand
    traverse_parser = subparsers.add_parser(
        "traverse",
        help="Traverse a project and print its functions graph as JSON (default)",
    )
    traverse_parser.add_argument(
        "project",
        help="Project folder or git repository URL (http, https)",
    )
    traverse_parser.add_argument(
        "--no-publish",
        action="store_true",
        help="Don't run `dotnet publish` for .NET in-process projects",
    )
    traverse_parser.add_argument(
        "--keep-temp",
        action="store_true",
        help="Keep temporary folders (clones, publish output) and list them in the output",
    )

    # host-settings subcommand
    host_parser = subparsers.add_parser(
        "host-settings",
        help="Print Durable Task settings from host.json",
    )
    host_parser.add_argument(
        "folder",
        help="Folder containing host.json",
    )

    return parser


def parse_args(args: list[str]) -> argparse.Namespace:
    """Parse command-line arguments, treating a bare project path as `traverse`."""
    parser = create_parser()

    # Skip global options; whatever follows them must be a command, otherwise it's
    # a project path or a traverse option
    for i, arg in enumerate(args):
        if arg in GLOBAL_OPTIONS:
            continue
        if arg not in COMMANDS:
            args = args[:i] + ["traverse"] + args[i:]
        break

    return parser.parse_args(args)


def remove_temp_folders(temp_folders: list[str]) -> None:
    for folder in temp_folders:
        logger.info(f"Removing {folder}")
        shutil.rmtree(folder, ignore_errors=True)


async def run_traverse(project: str, publish: bool = True, keep_temp: bool = False) -> int:
    """Run the traverse command.

    Args:
        project: Project folder or git URL
        publish: Whether to publish .NET in-process projects
        keep_temp: Whether to keep temporary folders

    Returns:
        Exit code (0 for success, non-zero for fatal errors)
    """
    temp_folders: list[str] = []
    try:
        result = await traverse_function_project(
            project, publish=publish, temp_folders=temp_folders
        )
        print(result.to_json())
        return 0
    except ProjectLoadError as e:
        logger.error(f"Traversal failed while {e.phase}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if not keep_temp:
            remove_temp_folders(temp_folders)


def run_host_settings(folder: str) -> int:
    """Run the host-settings command."""
    settings = read_host_settings(folder)
    print(
        json.dumps(
            {
                "hubName": settings.hub_name,
                "storageProviderType": settings.storage_provider_type,
                "connectionStringName": settings.connection_string_name,
            },
            indent=2,
        )
    )
    return 0


async def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for success, non-zero for fatal errors)
    """
    try:
        parsed = parse_args(args)
    except SystemExit as e:
        return e.code if e.code else 1

    setup_logging(parsed.verbose)

    if parsed.command is None:
        # No command and no args - show help
        create_parser().print_help(sys.stderr)
        return 1

    if parsed.command == "traverse":
        return await run_traverse(
            parsed.project, publish=not parsed.no_publish, keep_temp=parsed.keep_temp
        )
    elif parsed.command == "host-settings":
        return run_host_settings(parsed.folder)

    return 1


def main():
    """Entry point for the CLI."""
    exit_code = asyncio.run(run_cli(sys.argv[1:]))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
