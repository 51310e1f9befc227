"""Download functions for harness."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Callable, Iterator

import requests
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from .errors import DownloadError, FilesystemError
from .utils import logstep, stderr_is_terminal, timed_step

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@contextlib.contextmanager
def _progress(total: int | None) -> Iterator[Callable[[int], None]]:
    """Yield a callback that advances a progress bar by the bytes received.

    The bar is only drawn when stderr is a terminal; otherwise the callback
    does nothing.
    """
    if not stderr_is_terminal():
        yield lambda _: None
        return

    with Progress(
        TextColumn("   "),
        DownloadColumn(),
        BarColumn(bar_width=40),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TransferSpeedColumn(),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task("download", total=total)
        yield lambda size: progress.advance(task, size)


def _content_length(response: requests.Response) -> int | None:
    try:
        return int(response.headers.get("Content-Length", ""))
    except ValueError:
        return None


def download_file(url: str, destination: str | Path) -> Path:
    """Download a file from a URL to a destination path.

    The body is streamed to disk; the destination is created or truncated.

    Raises:
        DownloadError: If the request fails or the status isn't 2xx.
        FilesystemError: If the destination can't be written.

    """
    destination = Path(destination)
    logstep(f"downloading {url} to {destination}")

    with timed_step():
        try:
            response = requests.get(url, stream=True)  # noqa: S113
        except requests.RequestException as e:
            msg = f"failed to download {url}: {e}"
            raise DownloadError(msg) from e

        with response:
            if not 200 <= response.status_code < 300:  # noqa: PLR2004
                msg = f"received unexpected response when downloading {url}: http{response.status_code}"
                raise DownloadError(msg)

            try:
                with destination.open("wb") as f, _progress(_content_length(response)) as advance:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        advance(len(chunk))
            except requests.RequestException as e:
                msg = f"failed to download {url}: {e}"
                raise DownloadError(msg) from e
            except OSError as e:
                msg = f"failed to write {destination}: {e}"
                raise FilesystemError(msg) from e

    logger.debug("downloaded %s to %s", url, destination)
    return destination
