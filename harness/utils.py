"""Utility functions for harness."""

from __future__ import annotations

import contextlib
import logging
import os
import platform
import subprocess
import sys
import time
from typing import Iterator, Mapping, Sequence

from rich.console import Console
from rich.logging import RichHandler

# Initialize rich console
console = Console()
logger = logging.getLogger(__name__)

_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
}


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def logstep(text: str) -> None:
    """Print a single step of the provisioning process."""
    console.print(f" [blue]•[/blue] [bright_black]{text}[/bright_black]", highlight=False)


@contextlib.contextmanager
def timed_step(indent: str = "   ") -> Iterator[None]:
    """Print the elapsed time once the wrapped block finishes, in red if it raised."""
    start = time.monotonic()
    try:
        yield
    except BaseException:
        console.print(f"{indent}[red]✘ {_elapsed(start)}[/red]", highlight=False)
        raise
    console.print(f"{indent}[green]✔ {_elapsed(start)}[/green]", highlight=False)


def _elapsed(start: float) -> str:
    elapsed = time.monotonic() - start
    if elapsed < 1:
        return f"{elapsed * 1000:.0f}ms"
    return f"{elapsed:.3f}s"


def current_platform() -> tuple[str, str]:
    """Detect the current operating system and architecture.

    Names follow the convention most release pages use: ``linux``, ``darwin``
    and ``windows`` for the OS, ``amd64``, ``arm64``, ``386`` and ``arm`` for
    the architecture. Other systems are reported as Python names them, minus
    any version number (``openbsd7`` is ``openbsd``), and unknown machines
    lowercased as-is.
    """
    if sys.platform in ("win32", "cygwin"):
        os_name = "windows"
    else:
        os_name = sys.platform.rstrip("0123456789")

    machine = platform.machine().lower()
    arch = _ARCHES.get(machine, machine)

    return os_name, arch


def executable_extension() -> str:
    """Return the suffix executables carry on the running platform."""
    return ".exe" if sys.platform == "win32" else ""


def stderr_is_terminal() -> bool:
    """Check whether standard error is attached to an interactive terminal."""
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


def run_command(
    args: Sequence[str],
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    capture: bool = False,  # noqa: FBT001, FBT002
) -> subprocess.CompletedProcess:
    """Run an executable and wait for it to finish.

    ``env`` is merged on top of the current environment. When ``capture`` is
    set, stderr is folded into stdout and both are returned as text in
    ``stdout``; otherwise the process inherits the terminal.
    Raises ``OSError`` when the executable can't be started.
    """
    full_env = None
    if env:
        full_env = {**os.environ, **env}

    logger.debug("running %s", " ".join(args))
    if capture:
        return subprocess.run(  # noqa: S603
            list(args),
            env=full_env,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    return subprocess.run(list(args), env=full_env, cwd=cwd, check=False)  # noqa: S603
