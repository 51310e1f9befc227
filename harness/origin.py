"""Origins: the different ways a binary can be provisioned."""

from __future__ import annotations

import abc
import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .download import download_file
from .errors import FilesystemError, InstallError
from .extract import EXECUTABLE_MODE, extract, mapping_selector
from .template import Template
from .utils import logstep, run_command

logger = logging.getLogger(__name__)

# appended to archives whose name clashes with a file extracted from them
DOWNLOAD_SUFFIX = ".download"


class Origin(abc.ABC):
    """Where a binary is obtained from and how it gets installed.

    New sources are supported by subclassing and implementing ``install``.
    """

    @abc.abstractmethod
    def install(self, template: Template) -> None:
        """Install the binary described by ``template``.

        The template carries everything known about the target environment:
        platform, destination and requested version.
        """


def prepare_directory(template: Template) -> Path:
    """Create the destination directory of ``template`` if needed."""
    directory = Path(template.directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"failed to create destination folder {directory}: {e}"
        raise FilesystemError(msg) from e
    return directory


@dataclass
class PackageInstall(Origin):
    """Install a binary with the ecosystem's package installer.

    By default ``go install <package>@<version>`` is run with ``GOBIN``
    pointing at the binary directory, e.g. for
    ``golang.org/x/tools/cmd/goimports``.

    The installed executable keeps whatever name the installer gives it;
    it isn't renamed to the binary name.
    """

    package: str
    installer: tuple[str, ...] = ("go", "install")
    # environment variable telling the installer where to put executables
    root_env: str = "GOBIN"

    def install(self, template: Template) -> None:
        """Run the installer targeting the template directory."""
        directory = prepare_directory(template).absolute()

        target = f"{self.package}@{template.version}"
        args = [*self.installer, target]
        logstep(f"running {self.root_env}={directory} {' '.join(args)}")

        try:
            result = run_command(args, env={self.root_env: str(directory)})
        except OSError as e:
            msg = f"unable to install executable: {e}"
            raise InstallError(msg) from e

        if result.returncode != 0:
            msg = f"unable to install executable: {' '.join(args)} exited with status {result.returncode}"
            raise InstallError(msg)


@dataclass
class DirectDownload(Origin):
    """Download the binary itself from a URL.

    The URL may contain template placeholders, e.g.
    ``https://github.com/foo/bar/releases/download/v{{ version }}/bar_{{ os }}_{{ arch }}{{ extension }}``.
    """

    url: str

    def install(self, template: Template) -> None:
        """Download the executable straight to the template path."""
        prepare_directory(template)
        url = template.resolve(self.url)

        path = Path(template.path)
        download_file(url, path)
        try:
            path.chmod(EXECUTABLE_MODE)
        except OSError as e:
            msg = f"failed to set permissions on {path}: {e}"
            raise FilesystemError(msg) from e


@dataclass
class ArchiveDownload(Origin):
    """Download an archive and extract binaries out of it.

    ``files`` maps entry names inside the archive to the names they get in the
    binary directory; both sides may contain template placeholders. When it's
    empty, the whole archive is extracted as is.
    """

    url: str
    files: dict[str, str] = field(default_factory=dict)

    def install(self, template: Template) -> None:
        """Download the archive next to the binaries and extract it there."""
        directory = prepare_directory(template)
        url = template.resolve(self.url)

        files = {
            template.must_resolve(entry): template.must_resolve(output)
            for entry, output in self.files.items()
        }

        archive = directory / archive_name(url)
        # the archive is removed after extraction, so it can't share a path with its contents
        outputs = {Path(template.path), *(directory / output for output in files.values())}
        if archive in outputs:
            archive = archive.with_name(archive.name + DOWNLOAD_SUFFIX)

        if archive.exists():
            logger.debug("reusing previously downloaded %s", archive)
        else:
            download_file(url, archive)

        extract(archive, directory, mapping_selector(files))


def archive_name(url: str) -> str:
    """Return the file name a downloaded archive is stored under."""
    name = posixpath.basename(unquote(urlsplit(url).path))
    if not name or name in (os.curdir, os.pardir):
        return "archive"
    return name
