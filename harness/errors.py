"""Errors raised while provisioning binaries."""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for every provisioning failure.

    Once the failure has been attributed to a binary, ``binary`` holds its name
    and the string form of the error is prefixed with it.
    """

    def __init__(self, message: str, binary: str | None = None) -> None:
        """Initialize the ProvisionError."""
        self.message = message
        self.binary = binary
        super().__init__(message)

    def __str__(self) -> str:
        """Return the message, prefixed by the binary name when known."""
        if self.binary:
            return f"{self.binary}: {self.message}"
        return self.message


class ConfigError(ProvisionError):
    """Invalid or incomplete binary declaration."""


class TemplateError(ProvisionError):
    """A template string can't be resolved."""


class FilesystemError(ProvisionError):
    """A directory or file couldn't be created or written."""


class DownloadError(ProvisionError):
    """Transport failure or non-2xx response."""


class ExtractionError(ProvisionError):
    """Error during extraction process."""


class UnsupportedFormatError(ExtractionError):
    """The archive is neither a gzip-compressed tar nor a zip."""


class InstallError(ProvisionError):
    """The package installer or an origin failed."""
