"""Configuration for pytest fixtures used in harness tests."""

from __future__ import annotations

import io
import tarfile
import zipfile
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest


def create_tar_gz(files: dict[str, bytes | None]) -> bytes:
    """Create a gzip-compressed tar archive; a None content adds a directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def create_zip(files: dict[str, bytes | None]) -> bytes:
    """Create a zip archive; a None content adds a directory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w") as zip_file:
        for name, content in files.items():
            if content is None:
                dir_name = name if name.endswith("/") else f"{name}/"
                zip_info = zipfile.ZipInfo(dir_name)
                zip_info.external_attr = 0o755 << 16
                zip_file.writestr(zip_info, "")
            else:
                zip_info = zipfile.ZipInfo(name)
                zip_info.external_attr = 0o644 << 16
                zip_file.writestr(zip_info, content)
    return buffer.getvalue()


def fake_response(content: bytes = b"", status_code: int = 200) -> MagicMock:
    """Build a stand-in for a streamed ``requests.Response``."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"Content-Length": str(len(content))}
    response.iter_content.return_value = [content] if content else []
    response.__enter__.return_value = response
    return response


@pytest.fixture
def create_dummy_archive() -> Callable:
    r"""Create an archive file with the given files for testing.

    Returns a function that writes the archive and returns its path.

    Usage:
        archive_path = create_dummy_archive(
            dest_path=tmp_path / "test.tar.gz",
            files={"bin/tool": b"#!/bin/sh\necho test", "README.md": b"docs"},
            archive_type="tar.gz",
        )
    """

    def _create_archive(
        dest_path: Path,
        files: dict[str, bytes | None],
        archive_type: str = "tar.gz",
    ) -> Path:
        if archive_type == "tar.gz":
            dest_path.write_bytes(create_tar_gz(files))
        elif archive_type == "zip":
            dest_path.write_bytes(create_zip(files))
        else:  # pragma: no cover
            msg = f"Unsupported archive type: {archive_type}"
            raise ValueError(msg)
        return dest_path

    return _create_archive


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """Directory binaries get installed into; not created up front."""
    return tmp_path / "bin"
