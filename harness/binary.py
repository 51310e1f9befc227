"""Binaries that get provisioned on demand.

A :class:`Binary` states the name a binary will have after installation, the
version that's expected and the :class:`~harness.origin.Origin` it's obtained
from. Calling :meth:`Binary.ensure` downloads or updates it only when needed::

    commitsar = Binary(
        "commitsar",
        "0.20.1",
        ArchiveDownload(
            "https://github.com/aevea/commitsar/releases/download/v{{ version }}/"
            "commitsar_{{ version }}_{{ os }}_{{ arch }}.tar.gz",
            # the archive has more files; only the binary is needed
            {"commitsar": "commitsar"},
        ),
    )
    commitsar.ensure()
    subprocess.run([commitsar.path, "--help"])
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from .errors import ConfigError, FilesystemError, ProvisionError
from .origin import Origin
from .template import Template
from .utils import current_platform, executable_extension, logstep, run_command

logger = logging.getLogger(__name__)

# version accepted without checking what's installed
LATEST = "latest"
# pass as version_cmd to skip checking the installed version
SKIP_VERSION_CHECK = ""
DEFAULT_VERSION_CMD = "{{ path }} --version"
DEFAULT_DIRECTORY = "bin"
DEFAULT_ARCHIVE_EXTENSION = ".tar.gz"


class Binary:
    """A binary, the version it's expected at and the origin it comes from."""

    def __init__(
        self,
        name: str,
        version: str,
        origin: Origin,
        *,
        directory: str = DEFAULT_DIRECTORY,
        os_mapping: Mapping[str, str] | None = None,
        arch_mapping: Mapping[str, str] | None = None,
        archive_extensions: Mapping[str, str] | None = None,
        version_cmd: str = DEFAULT_VERSION_CMD,
        platform: tuple[str, str] | None = None,
    ) -> None:
        """Describe a binary.

        Args:
            name: Name of the executable after installation.
            version: Version to install; ``"latest"`` skips version checks.
            origin: Where the binary is provisioned from.
            directory: Directory binaries are installed into.
            os_mapping: Replacements for the OS name, for vendors naming it
                differently, e.g. ``{"darwin": "macos"}``.
            arch_mapping: Replacements for the architecture name, e.g.
                ``{"arm64": "aarch64"}``.
            archive_extensions: Archive suffix per OS for vendors shipping
                ``.zip`` on some platforms, e.g. ``{"windows": ".zip"}``.
                Keyed by the OS name before ``os_mapping`` is applied.
            version_cmd: Template of the command printing the installed
                version; ``SKIP_VERSION_CHECK`` disables the check.
            platform: ``(os, arch)`` to provision for instead of the running one.

        """
        os_name, arch = platform or current_platform()
        extension = executable_extension()
        path = os.path.join(directory, name) + extension

        archive_extension = DEFAULT_ARCHIVE_EXTENSION
        if archive_extensions and os_name in archive_extensions:
            archive_extension = archive_extensions[os_name]
        if os_mapping and os_name in os_mapping:
            os_name = os_mapping[os_name]
        if arch_mapping and arch in arch_mapping:
            arch = arch_mapping[arch]

        self.origin = origin
        self.template = Template(
            os=os_name,
            arch=arch,
            directory=directory,
            name=name,
            path=path,
            version=version,
            extension=extension,
            archive_extension=archive_extension,
        )
        self.version_cmd = version_cmd
        if version_cmd != SKIP_VERSION_CHECK:
            self.version_cmd = self.template.resolve(version_cmd)

    def __repr__(self) -> str:
        return f"Binary({self.name!r}, {self.version!r}, {self.origin!r})"

    @property
    def name(self) -> str:
        """Command name of the binary."""
        return self.template.name

    @property
    def version(self) -> str:
        return self.template.version

    @property
    def directory(self) -> str:
        return self.template.directory

    @property
    def path(self) -> str:
        """Qualified path to the executable; use it to invoke the binary."""
        return self.template.path

    def ensure(self) -> None:
        """Ensure the binary is installed and it's at the expected version."""
        if not self.version:
            msg = "version must be set"
            raise ConfigError(msg, self.name)

        if self.is_installed() and self.is_expected_version():
            logger.debug("%s %s is already installed", self.name, self.version)
            return

        self.install()

    def install(self) -> None:
        """Install the binary through its origin, regardless of what's present."""
        logstep(f"installing {self.name}")
        try:
            self.origin.install(self.template)
        except ProvisionError as e:
            e.binary = self.name
            raise
        except OSError as e:
            msg = f"failed to install: {e}"
            raise FilesystemError(msg, self.name) from e

    def is_installed(self) -> bool:
        """Check whether the executable exists."""
        return os.path.exists(self.path)

    def is_expected_version(self) -> bool:
        """Check that the installed binary reports the expected version.

        A ``"latest"`` version can't be verified, so it's assumed to match.
        Disabling the version command means trusting whatever is installed.
        """
        if self.version == LATEST:
            return True

        if self.version_cmd == SKIP_VERSION_CHECK:
            return True

        semver = self.version.removeprefix("v")
        args = self.version_cmd.split()

        logstep(f"running {args} looking for {semver}")
        try:
            result = run_command(args, capture=True)
        except OSError as e:
            logger.debug("version check for %s failed: %s", self.name, e)
            return False

        if result.returncode != 0:
            return False

        return semver in result.stdout
