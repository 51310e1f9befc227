"""Tests for the origins binaries are provisioned from."""

from __future__ import annotations

import os
import stat
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from conftest import create_tar_gz, create_zip, fake_response

from harness.download import download_file
from harness.errors import (
    DownloadError,
    FilesystemError,
    InstallError,
    TemplateError,
    UnsupportedFormatError,
)
from harness.origin import (
    ArchiveDownload,
    DirectDownload,
    Origin,
    PackageInstall,
    archive_name,
)
from harness.template import Template


def _template(directory: Path, **kwargs: str) -> Template:
    fields = {
        "os": "linux",
        "arch": "amd64",
        "directory": str(directory),
        "name": "test-bin",
        "path": str(directory / "test-bin"),
        "version": "1.0.0",
    }
    fields.update(kwargs)
    return Template(**fields)


def test_origins_implement_origin() -> None:
    assert isinstance(DirectDownload("https://example.com/{{ name }}"), Origin)
    assert isinstance(ArchiveDownload("https://example.com/{{ name }}.tar.gz"), Origin)
    assert isinstance(PackageInstall("example.com/pkg/cmd"), Origin)


def test_origin_is_abstract() -> None:
    with pytest.raises(TypeError):
        Origin()  # type: ignore[abstract]


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/releases/tool_1.0.0_linux_amd64.tar.gz", "tool_1.0.0_linux_amd64.tar.gz"),
        ("https://example.com/download/tool.zip?raw=true", "tool.zip"),
        ("https://example.com/a%20b.tar.gz", "a b.tar.gz"),
        ("https://example.com/", "archive"),
    ],
)
def test_archive_name(url: str, expected: str) -> None:
    assert archive_name(url) == expected


class TestDirectDownload:
    """Tests for downloading binaries directly."""

    def test_install(self, bin_dir: Path) -> None:
        template = _template(bin_dir)
        origin = DirectDownload("https://example.com/{{ name }}-{{ os }}-{{ arch }}")

        with patch("harness.download.requests.get", return_value=fake_response(b"test-binary")) as get:
            origin.install(template)

        get.assert_called_once_with("https://example.com/test-bin-linux-amd64", stream=True)
        path = Path(template.path)
        assert path.read_bytes() == b"test-binary"
        if sys.platform != "win32":
            assert stat.S_IMODE(path.stat().st_mode) == 0o755

    def test_install_creates_directory(self, tmp_path: Path) -> None:
        directory = tmp_path / "nested" / "bin"
        template = _template(directory)

        with patch("harness.download.requests.get", return_value=fake_response(b"x")):
            DirectDownload("https://example.com/{{ name }}").install(template)

        assert directory.is_dir()
        assert Path(template.path).exists()

    @pytest.mark.parametrize("status_code", [404, 500, 301])
    def test_install_http_error(self, bin_dir: Path, status_code: int) -> None:
        template = _template(bin_dir)
        origin = DirectDownload("https://example.com/{{ name }}")

        with (
            patch("harness.download.requests.get", return_value=fake_response(status_code=status_code)),
            pytest.raises(DownloadError, match=f"unexpected response.*http{status_code}"),
        ):
            origin.install(template)

        assert not Path(template.path).exists()

    def test_install_transport_error(self, bin_dir: Path) -> None:
        template = _template(bin_dir)
        origin = DirectDownload("https://example.com/{{ name }}")

        with (
            patch(
                "harness.download.requests.get",
                side_effect=requests.ConnectionError("connection refused"),
            ),
            pytest.raises(DownloadError, match="connection refused"),
        ):
            origin.install(template)

    def test_install_bad_url_template(self, bin_dir: Path) -> None:
        origin = DirectDownload("https://example.com/{{ nope }}")

        with patch("harness.download.requests.get") as get, pytest.raises(TemplateError):
            origin.install(_template(bin_dir))

        get.assert_not_called()

    def test_install_unwritable_directory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        template = _template(blocker / "bin")

        with patch("harness.download.requests.get") as get, pytest.raises(FilesystemError):
            DirectDownload("https://example.com/{{ name }}").install(template)

        get.assert_not_called()


class TestArchiveDownload:
    """Tests for downloading archives and extracting binaries from them."""

    def test_install_mapped_files(self, bin_dir: Path) -> None:
        """Test that only mapped entries land in the directory, renamed."""
        data = create_tar_gz({"bin/tool": b"tool binary", "README.md": b"readme"})
        origin = ArchiveDownload("https://example.com/tool-{{ version }}.tar.gz", {"bin/tool": "tool"})

        with patch("harness.download.requests.get", return_value=fake_response(data)) as get:
            origin.install(_template(bin_dir))

        get.assert_called_once_with("https://example.com/tool-1.0.0.tar.gz", stream=True)
        assert (bin_dir / "tool").read_bytes() == b"tool binary"
        assert not (bin_dir / "README.md").exists()
        assert not (bin_dir / "bin").exists()
        # the downloaded archive is removed once extracted
        assert not (bin_dir / "tool-1.0.0.tar.gz").exists()
        if sys.platform != "win32":
            assert os.access(bin_dir / "tool", os.X_OK)

    def test_install_zip_mapped_files(self, bin_dir: Path) -> None:
        data = create_zip(
            {
                "app.exe": b"windows binary",
                "lib/helper.so": b"library file",
                "docs/help.txt": b"help documentation",
            },
        )
        origin = ArchiveDownload(
            "https://example.com/{{ name }}-{{ os }}{{ archive_extension }}",
            {"app.exe": "myapp", "lib/helper.so": "helper"},
        )
        template = _template(bin_dir, name="myproject", os="windows", archive_extension=".zip")

        with patch("harness.download.requests.get", return_value=fake_response(data)) as get:
            origin.install(template)

        get.assert_called_once_with("https://example.com/myproject-windows.zip", stream=True)
        assert (bin_dir / "myapp").read_bytes() == b"windows binary"
        assert (bin_dir / "helper").read_bytes() == b"library file"
        assert not (bin_dir / "docs").exists()

    def test_install_without_mapping_extracts_everything(self, bin_dir: Path) -> None:
        data = create_tar_gz({"bin/app": b"app", "bin/helper": b"helper", "config.txt": b"config"})
        origin = ArchiveDownload("https://example.com/archive.tar.gz")

        with patch("harness.download.requests.get", return_value=fake_response(data)):
            origin.install(_template(bin_dir))

        assert (bin_dir / "bin" / "app").read_bytes() == b"app"
        assert (bin_dir / "bin" / "helper").read_bytes() == b"helper"
        assert (bin_dir / "config.txt").read_bytes() == b"config"

    def test_install_resolves_mapping_templates(self, bin_dir: Path) -> None:
        data = create_tar_gz(
            {
                "myapp-v1.2.3/bin/myapp": b"versioned app",
                "myapp-v1.2.3/lib/lib.so": b"library",
            },
        )
        origin = ArchiveDownload(
            "https://example.com/{{ name }}-v{{ version }}-{{ os }}-{{ arch }}.tar.gz",
            {
                "{{ name }}-v{{ version }}/bin/{{ name }}": "{{ name }}",
                "{{ name }}-v{{ version }}/lib/lib.so": "lib",
            },
        )
        template = _template(bin_dir, name="myapp", version="1.2.3")

        with patch("harness.download.requests.get", return_value=fake_response(data)) as get:
            origin.install(template)

        get.assert_called_once_with("https://example.com/myapp-v1.2.3-linux-amd64.tar.gz", stream=True)
        assert (bin_dir / "myapp").read_bytes() == b"versioned app"
        assert (bin_dir / "lib").read_bytes() == b"library"

    def test_install_bad_mapping_template(self, bin_dir: Path) -> None:
        data = create_tar_gz({"tool": b"tool"})
        origin = ArchiveDownload("https://example.com/tool.tar.gz", {"{{ nope }}": "tool"})

        with (
            patch("harness.download.requests.get", return_value=fake_response(data)),
            pytest.raises(RuntimeError, match="invalid template"),
        ):
            origin.install(_template(bin_dir))

    def test_install_reuses_existing_archive(self, bin_dir: Path) -> None:
        """Test that an archive already at the download location isn't fetched again."""
        bin_dir.mkdir()
        (bin_dir / "tool.tar.gz").write_bytes(create_tar_gz({"tool": b"cached"}))
        origin = ArchiveDownload("https://example.com/tool.tar.gz", {"tool": "tool"})

        with patch("harness.download.requests.get") as get:
            origin.install(_template(bin_dir))

        get.assert_not_called()
        assert (bin_dir / "tool").read_bytes() == b"cached"
        assert not (bin_dir / "tool.tar.gz").exists()

    @pytest.mark.parametrize("files", [{}, {"tool": "{{ name }}"}, {"bin/tool": "tool"}])
    def test_install_archive_named_like_its_binary(self, bin_dir: Path, files: dict[str, str]) -> None:
        """Test that an archive served under the binary's name doesn't replace it."""
        data = create_tar_gz({"tool": b"tool binary", "bin/tool": b"tool binary"})
        origin = ArchiveDownload("https://example.com/dl/{{ name }}", files)
        template = _template(bin_dir, name="tool", path=str(bin_dir / "tool"))

        with patch("harness.download.requests.get", return_value=fake_response(data)):
            origin.install(template)

        assert (bin_dir / "tool").read_bytes() == b"tool binary"
        assert not (bin_dir / "tool.download").exists()

    def test_install_http_error(self, bin_dir: Path) -> None:
        origin = ArchiveDownload("https://example.com/missing.tar.gz", {"app": "app"})

        with (
            patch("harness.download.requests.get", return_value=fake_response(status_code=404)),
            pytest.raises(DownloadError, match="http404"),
        ):
            origin.install(_template(bin_dir))

        assert not (bin_dir / "missing.tar.gz").exists()

    def test_install_unsupported_format(self, bin_dir: Path) -> None:
        """Test that a download which isn't an archive is kept for inspection."""
        origin = ArchiveDownload("https://example.com/file.txt", {"app": "app"})

        with (
            patch("harness.download.requests.get", return_value=fake_response(b"not an archive")),
            pytest.raises(UnsupportedFormatError, match="unsupported format"),
        ):
            origin.install(_template(bin_dir))

        assert (bin_dir / "file.txt").read_bytes() == b"not an archive"
        assert not (bin_dir / "app").exists()


class TestDownloadProgress:
    """Tests for downloads drawn with a progress bar on a terminal."""

    @pytest.mark.parametrize("content_length", [True, False])
    def test_download_on_terminal(self, tmp_path: Path, content_length: bool) -> None:  # noqa: FBT001
        response = fake_response(b"first second")
        response.iter_content.return_value = [b"first ", b"second"]
        if not content_length:
            response.headers = {}
        destination = tmp_path / "tool"

        with (
            patch("harness.download.stderr_is_terminal", return_value=True),
            patch("harness.download.requests.get", return_value=response),
        ):
            assert download_file("https://example.com/tool", destination) == destination

        assert destination.read_bytes() == b"first second"


class TestPackageInstall:
    """Tests for installing binaries with a package installer."""

    def test_install(self, bin_dir: Path) -> None:
        template = _template(bin_dir, name="goimports", version="v0.20.0")
        origin = PackageInstall("golang.org/x/tools/cmd/goimports")

        with patch(
            "harness.origin.run_command",
            return_value=subprocess.CompletedProcess([], 0),
        ) as run:
            origin.install(template)

        assert bin_dir.is_dir()
        run.assert_called_once_with(
            ["go", "install", "golang.org/x/tools/cmd/goimports@v0.20.0"],
            env={"GOBIN": str(bin_dir.absolute())},
        )

    def test_install_custom_installer(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        template = _template(Path("tools"), version="1.5.0")
        origin = PackageInstall("ripgrep", installer=("cargo", "install"), root_env="CARGO_INSTALL_ROOT")

        run = MagicMock(return_value=subprocess.CompletedProcess([], 0))
        monkeypatch.setattr("harness.origin.run_command", run)
        origin.install(template)

        run.assert_called_once_with(
            ["cargo", "install", "ripgrep@1.5.0"],
            env={"CARGO_INSTALL_ROOT": str(Path("tools").absolute())},
        )

    def test_install_failure(self, bin_dir: Path) -> None:
        origin = PackageInstall("example.com/pkg/cmd")

        with (
            patch("harness.origin.run_command", return_value=subprocess.CompletedProcess([], 1)),
            pytest.raises(InstallError, match="unable to install executable"),
        ):
            origin.install(_template(bin_dir))

    def test_install_missing_installer(self, bin_dir: Path) -> None:
        origin = PackageInstall("example.com/pkg/cmd", installer=("definitely-not-an-installer-xyz",))

        with pytest.raises(InstallError, match="unable to install executable"):
            origin.install(_template(bin_dir))
