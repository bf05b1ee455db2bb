"""Installation image download and checksum verification."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from archforge.core.errors import ArchforgeError
from archforge.core.executor import Command
from archforge.utils.shell import command_exists

if TYPE_CHECKING:
    from archforge.core.executor import Executor

logger = logging.getLogger(__name__)

ISO_NAME = "archlinux-x86_64.iso"
MANIFEST_NAME = "sha256sums.txt"

_CHUNK_SIZE = 1024 * 1024


class ChecksumError(ArchforgeError):
    """Raised when an image cannot be verified against its manifest."""


def parse_checksum_manifest(text: str, name: str) -> str:
    """Find the expected digest for a file in a sha256sums manifest.

    The first line ending in whitespace followed by name wins.

    Args:
        text: Manifest content ("<digest>  <file>" per line).
        name: File name to look up.

    Returns:
        Lower-case hex digest.

    Raises:
        ChecksumError: If the manifest has no entry for name.
    """
    pattern = re.compile(rf"\s{re.escape(name)}$")
    for line in text.splitlines():
        line = line.rstrip()
        if pattern.search(line):
            return line.split()[0].lower()
    raise ChecksumError(f"Unable to read expected checksum for {name}")


def sha256_file(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file, reading it in chunks."""
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_iso(iso: Path, manifest: Path) -> str:
    """Check an image against its manifest, deleting it unless verified.

    Args:
        iso: Downloaded image.
        manifest: Downloaded sha256sums file.

    Returns:
        The verified digest.

    Raises:
        ChecksumError: If the entry is missing or the digest differs. The
            image is removed before raising in both cases.
    """
    try:
        expected = parse_checksum_manifest(manifest.read_text(encoding="utf-8"), iso.name)
    except ChecksumError:
        logger.error("No checksum entry for %s in %s", iso.name, manifest)
        iso.unlink(missing_ok=True)
        raise
    actual = sha256_file(iso)
    if actual != expected:
        logger.error("Checksum mismatch for %s: expected %s, got %s", iso, expected, actual)
        iso.unlink(missing_ok=True)
        raise ChecksumError("ISO checksum verification failed.")
    logger.info("Verified %s (%s)", iso, actual)
    return actual


def download_command(url: str, dest: Path) -> Command:
    """Build a curl (preferred) or wget download command."""
    if command_exists("curl"):
        return Command.of("curl", "-fL", url, "-o", dest)
    return Command.of("wget", "-O", dest, url)


def download(url: str, dest: Path, executor: Executor) -> None:
    """Download url to dest.

    Raises:
        CommandError: If the downloader fails.
    """
    executor.run(download_command(url, dest))
