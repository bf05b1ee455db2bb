"""Pytest configuration and shared fixtures.

This module contains the temporary host layout, the recording executor
and sample system files used across all test modules.
"""

from pathlib import Path

import pytest
from archforge.core.paths import HostLayout
from fakes import RecordingExecutor


@pytest.fixture
def layout(tmp_path: Path) -> HostLayout:
    """Host layout rooted in a temporary directory."""
    root = tmp_path / "root"
    root.mkdir()
    return HostLayout(root=root)


@pytest.fixture
def executor() -> RecordingExecutor:
    """Executor recording every mutating action."""
    return RecordingExecutor()


@pytest.fixture
def stock_pacman_conf() -> str:
    """pacman.conf as shipped, with [multilib] commented out."""
    return """[options]
HoldPkg     = pacman glibc
Architecture = auto

[core]
Include = /etc/pacman.d/mirrorlist

[extra]
Include = /etc/pacman.d/mirrorlist

#[multilib-testing]
#Include = /etc/pacman.d/mirrorlist

#[multilib]
#Include = /etc/pacman.d/mirrorlist
"""


@pytest.fixture
def locale_gen_text() -> str:
    """Excerpt of /etc/locale.gen."""
    return """# Configuration file for locale-gen
#
#  en_US.UTF-8 UTF-8
#de_DE.UTF-8 UTF-8
#en_US.UTF-8 UTF-8
#en_US ISO-8859-1
#pl_PL.UTF-8 UTF-8
"""
