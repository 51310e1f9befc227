"""Provision several binaries in one go."""

from __future__ import annotations

from .binary import Binary
from .errors import ProvisionError
from .utils import console, logstep, timed_step


def provision(*binaries: Binary) -> None:
    """Ensure every binary, one after the other.

    A failing binary doesn't stop the others from being provisioned; all the
    failures are reported together at the end.

    Raises:
        ProvisionError: If at least one binary couldn't be provisioned.

    """
    names = ", ".join(binary.name for binary in binaries)
    logstep(f"provisioning {len(binaries)} binaries: {names}")

    failures: list[str] = []
    with timed_step(indent=" "):
        for binary in binaries:
            try:
                binary.ensure()
            except ProvisionError as e:
                failures.append(f"failed to provision {binary.name}: {e.message}")

        if failures:
            for failure in failures:
                console.print(f" [red]• {failure}[/red]", highlight=False)
            msg = "provisioning failed: " + "; ".join(failures)
            raise ProvisionError(msg)
