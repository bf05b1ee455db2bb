"""VM test harness commands.

Boots the Arch ISO in QEMU against a disposable overlay image with the
project tree shared into the guest.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from archforge.cli.types import fail
from archforge.core.config import load_config
from archforge.core.errors import ArchforgeError
from archforge.vm.harness import VmHarness, VmPaths

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Run the QEMU test VM.",
    no_args_is_help=True,
)


def _harness() -> VmHarness:
    try:
        config = load_config()
    except ArchforgeError as e:
        fail(str(e), e)
    return VmHarness(VmPaths.default(), config.vm, Path.cwd())


@app.command()
def run(
    web: Annotated[
        bool,
        typer.Option(
            "--web",
            help="Headless VNC with a noVNC browser bridge.",
        ),
    ] = False,
    clean: Annotated[
        bool,
        typer.Option(
            "--clean",
            help="Delete every VM artifact and exit.",
        ),
    ] = False,
) -> None:
    """Download the ISO if needed and boot the VM.

    The ISO and base image are cached in the VM directory
    (ARCHFORGE_VM_DIR, default ./vm); guest writes go to an overlay.
    """
    harness = _harness()
    try:
        if clean:
            harness.clean()
            return
        code = harness.run(web=web)
    except ArchforgeError as e:
        fail(str(e), e)

    logger.info("QEMU exited with code %d", code)
    if code != 0:
        raise typer.Exit(code=code)


@app.command()
def reset(
    remove_all: Annotated[
        bool,
        typer.Option(
            "--all",
            help="Also delete the base image.",
        ),
    ] = False,
) -> None:
    """Discard the overlay image so the next run starts fresh."""
    harness = _harness()
    try:
        harness.reset(remove_base=remove_all)
    except (ArchforgeError, OSError) as e:
        fail(str(e), e)
