"""Command-line interface for harness."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console

from . import __version__
from .config import HarnessConfig
from .errors import ProvisionError
from .provision import provision
from .utils import setup_logging

# Initialize rich console
console = Console()
logger = logging.getLogger(__name__)


def list_binaries(_args: Any, config: HarnessConfig) -> None:
    """List declared binaries."""
    console.print("🔧 [blue]Declared binaries:[/blue]")
    for binary in config.all_binaries():
        console.print(
            f"  [green]{binary.name}[/green] {binary.version} "
            f"({type(binary.origin).__name__}) → {binary.path}",
            highlight=False,
        )


def ensure_binaries(args: argparse.Namespace, config: HarnessConfig) -> None:
    """Provision all binaries, or only the ones named on the command line."""
    names = args.binaries or list(config.binaries)
    if not names:
        console.print("⚠️ [yellow]No binaries declared[/yellow]")
        return
    provision(*(config.binary(name) for name in names))


def install_binary(args: argparse.Namespace, config: HarnessConfig) -> None:
    """Install a binary even if it's already present."""
    config.binary(args.binary).install()


def print_path(args: argparse.Namespace, config: HarnessConfig) -> None:
    """Print the path of a binary's executable."""
    print(config.binary(args.binary).path)


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="harness - Provision the binaries your build scripts depend on",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--directory",
        type=str,
        help="Directory binaries are installed into",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # list command
    list_parser = subparsers.add_parser("list", help="List declared binaries")
    list_parser.set_defaults(func=list_binaries)

    # ensure command
    ensure_parser = subparsers.add_parser(
        "ensure",
        help="Install binaries that are missing or at a different version",
    )
    ensure_parser.add_argument(
        "binaries",
        nargs="*",
        help="Binaries to provision (all if not specified)",
    )
    ensure_parser.set_defaults(func=ensure_binaries)

    # install command
    install_parser = subparsers.add_parser("install", help="Force install a binary")
    install_parser.add_argument("binary", help="Binary to install")
    install_parser.set_defaults(func=install_binary)

    # path command
    path_parser = subparsers.add_parser("path", help="Print the path of a binary")
    path_parser.add_argument("binary", help="Binary to print the path of")
    path_parser.set_defaults(func=print_path)

    # version command
    version_parser = subparsers.add_parser("version", help="Print version information")
    version_parser.set_defaults(
        func=lambda _, __: console.print(f"[yellow]harness[/] [bold]v{__version__}[/]"),
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    try:
        # Create config
        config = HarnessConfig.load_from_file(args.config_file)

        # Override binary directory if specified
        if args.directory:
            config.directory = Path(args.directory)

        # Execute command or show help
        if hasattr(args, "func"):
            args.func(args, config)
        else:
            parser.print_help()

    except ProvisionError as e:
        console.print(f"❌ [bold red]Error: {e!s}[/bold red]")
        if args.verbose:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
