"""Extract files from archives."""

from __future__ import annotations

import fnmatch
import logging
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import IO, Callable, Literal, Mapping, Optional

from .errors import ExtractionError, UnsupportedFormatError
from .utils import logstep, timed_step

logger = logging.getLogger(__name__)

ArchiveFormat = Literal["tar.gz", "zip"]

# Receives the entry name as stored in the archive and returns the path,
# relative to the destination, to extract it to; None skips the entry.
Selector = Callable[[str], Optional[str]]

EXECUTABLE_MODE = 0o755

_GZIP_MAGIC = b"\x1f\x8b"
_ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


def detect_format(header: bytes) -> ArchiveFormat | None:
    """Determine the archive format from its leading bytes."""
    if header.startswith(_GZIP_MAGIC):
        return "tar.gz"
    if header.startswith(_ZIP_MAGICS):
        return "zip"
    return None


def sniff_format(archive: Path) -> ArchiveFormat:
    """Read the first bytes of ``archive`` and tell which format it is."""
    try:
        with archive.open("rb") as f:
            header = f.read(4)
    except OSError as e:
        msg = f"failed to open {archive}: {e}"
        raise ExtractionError(msg) from e

    fmt = detect_format(header)
    if fmt is None:
        msg = f"unsupported format: {archive.name} is neither a tar.gz nor a zip archive"
        raise UnsupportedFormatError(msg)
    return fmt


# Selector factories
def identity_selector(name: str) -> str:
    """Extract every entry under its original name."""
    return name


def mapping_selector(mapping: Mapping[str, str] | None) -> Selector:
    """Only extract the entries named in ``mapping``, renamed to the mapped value.

    An empty mapping extracts everything as is.
    """
    if not mapping:
        return identity_selector

    files = dict(mapping)

    def _select(name: str) -> str | None:
        return files.get(name)

    return _select


def glob_selector(pattern: str) -> Selector:
    """Extract entries whose name or basename matches a glob pattern."""
    pattern = pattern.removesuffix("/")

    def _select(name: str) -> str | None:
        stripped = name.removesuffix("/")
        basename = Path(stripped).name
        if fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(stripped, pattern):
            return name
        return None

    return _select


def _target_path(destination: Path, output: str) -> Path:
    """Join ``output`` to ``destination``, refusing paths that leave it."""
    target = (destination / output).resolve()
    root = destination.resolve()
    if target != root and not target.is_relative_to(root):
        msg = f"entry {output!r} would be extracted outside of {destination}"
        raise ExtractionError(msg)
    return target


def _write_file(source: IO[bytes], path: Path) -> None:
    """Write the contents of a stream to a file with executable permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.is_file() or path.is_symlink():
        # a running executable can't be truncated on some systems
        path.unlink()
    with path.open("wb") as out:
        shutil.copyfileobj(source, out)
    path.chmod(EXECUTABLE_MODE)


def _extract_tar(archive: Path, destination: Path, selector: Selector) -> int:
    """Extract the selected members of a gzip-compressed tar archive."""
    count = 0
    with tarfile.open(archive, mode="r:gz") as tar:
        for member in tar:
            output = selector(member.name)
            if output is None:
                continue

            target = _target_path(destination, output)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                data = tar.extractfile(member)
                if data is None:  # pragma: no cover
                    continue
                with data:
                    _write_file(data, target)
                count += 1
            else:
                logger.debug("skipping %s: not a regular file", member.name)
    return count


def _extract_zip(archive: Path, destination: Path, selector: Selector) -> int:
    """Extract the selected entries of a zip archive."""
    count = 0
    with zipfile.ZipFile(archive) as zip_file:
        for info in zip_file.infolist():
            output = selector(info.filename)
            if output is None:
                continue

            target = _target_path(destination, output)
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            with zip_file.open(info) as data:
                _write_file(data, target)
            count += 1
    return count


def extract(archive: str | Path, destination: str | Path, selector: Selector) -> None:
    """Extract ``archive`` into ``destination``.

    The format is detected by looking at the content, never at the file name.
    ``selector`` is called for every entry and decides whether it gets
    extracted and under which name. Every extracted file is made executable.
    The archive is removed once everything was extracted; it's kept around
    when anything fails so it can be inspected.

    Raises:
        UnsupportedFormatError: If the content is neither tar.gz nor zip.
        ExtractionError: If decompression or writing any entry fails.

    """
    archive = Path(archive)
    destination = Path(destination)

    logstep(f"extracting {archive}")
    with timed_step():
        fmt = sniff_format(archive)
        try:
            destination.mkdir(parents=True, exist_ok=True)
            if fmt == "tar.gz":
                count = _extract_tar(archive, destination, selector)
            else:
                count = _extract_zip(archive, destination, selector)
        except ExtractionError:
            raise
        except (tarfile.TarError, zipfile.BadZipFile, zlib.error, EOFError) as e:
            msg = f"failed to extract {archive}: {e}"
            raise ExtractionError(msg) from e
        except OSError as e:
            msg = f"failed to write contents of {archive}: {e}"
            raise ExtractionError(msg) from e

        logger.debug("extracted %d files from %s", count, archive)
        archive.unlink()
