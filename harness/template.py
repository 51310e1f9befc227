"""Template holding the environment a binary gets provisioned for."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

from .errors import TemplateError

_OPEN = "{{"
_CLOSE = "}}"
_PLACEHOLDER = re.compile(r"^\s*\.?([A-Za-z_][A-Za-z0-9_]*)\s*$")


@dataclass(frozen=True)
class Template:
    """Fields available to ``{{ placeholder }}`` strings.

    Origins receive the template when installing, so URLs and archive file
    mappings can point at the artifact built for the running platform.
    """

    # operating system target (e.g. "linux", "darwin", "windows")
    os: str = ""
    # architecture target (e.g. "amd64", "arm64")
    arch: str = ""
    # directory the binary is installed into
    directory: str = ""
    # name of the binary
    name: str = ""
    # qualified path to the executable
    path: str = ""
    version: str = ""
    # "" on unix systems, ".exe" on windows
    extension: str = ""
    archive_extension: str = ".tar.gz"

    def fields(self) -> dict[str, str]:
        """Return the placeholder names and the values they resolve to."""
        return asdict(self)

    def resolve(self, fmt: str) -> str:
        """Substitute every ``{{ field }}`` placeholder in ``fmt``.

        Raises:
            TemplateError: If a placeholder is unterminated, malformed or
                refers to a field the template doesn't have.

        """
        values = self.fields()
        parts: list[str] = []
        pos = 0

        while True:
            start = fmt.find(_OPEN, pos)
            if start == -1:
                parts.append(fmt[pos:])
                break

            end = fmt.find(_CLOSE, start + len(_OPEN))
            if end == -1:
                msg = f"unterminated placeholder at offset {start} in {fmt!r}"
                raise TemplateError(msg)

            body = fmt[start + len(_OPEN) : end]
            match = _PLACEHOLDER.match(body)
            if not match:
                msg = f"malformed placeholder {{{{{body}}}}} in {fmt!r}"
                raise TemplateError(msg)

            field = match.group(1)
            if field not in values:
                msg = f"can't evaluate field {field!r} in {fmt!r}"
                raise TemplateError(msg)

            parts.append(fmt[pos:start])
            parts.append(values[field])
            pos = end + len(_CLOSE)

        return "".join(parts)

    def must_resolve(self, fmt: str) -> str:
        """Resolve ``fmt``, treating failure as a programming error."""
        try:
            return self.resolve(fmt)
        except TemplateError as e:
            msg = f"invalid template: {e}"
            raise RuntimeError(msg) from e
