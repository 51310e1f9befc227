"""harness - Binary provisioning for build automation scripts.

Declares the external command-line tools a project's build scripts depend on
and makes sure each one is present, at the expected version, under a local
``bin`` directory before it gets used. Binaries are obtained through a
package installer, a direct download, or an archive download from which
only the needed files are extracted.
"""

from __future__ import annotations

__version__ = "0.1.0"

from . import binary, cli, config, download, errors, extract, origin, provision, template, utils

# Re-export commonly used names
from .binary import LATEST, SKIP_VERSION_CHECK, Binary
from .cli import main
from .config import HarnessConfig
from .errors import (
    ConfigError,
    DownloadError,
    ExtractionError,
    FilesystemError,
    InstallError,
    ProvisionError,
    TemplateError,
    UnsupportedFormatError,
)
from .extract import glob_selector, identity_selector, mapping_selector
from .origin import ArchiveDownload, DirectDownload, Origin, PackageInstall
from .provision import provision as provision_all
from .template import Template

__all__ = [
    "LATEST",
    "SKIP_VERSION_CHECK",
    "ArchiveDownload",
    "Binary",
    "ConfigError",
    "DirectDownload",
    "DownloadError",
    "ExtractionError",
    "FilesystemError",
    "HarnessConfig",
    "InstallError",
    "Origin",
    "PackageInstall",
    "ProvisionError",
    "Template",
    "TemplateError",
    "UnsupportedFormatError",
    "binary",
    "cli",
    "config",
    "download",
    "errors",
    "extract",
    "glob_selector",
    "identity_selector",
    "main",
    "mapping_selector",
    "origin",
    "provision",
    "provision_all",
    "template",
    "utils",
]
