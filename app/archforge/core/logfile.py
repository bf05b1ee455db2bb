"""Per-run log files.

Every installer and repair run writes a timestamped log file under
/var/log. The file receives all records from the ``archforge`` logger
hierarchy: executed and simulated commands with their output, warnings
and phase changes.
"""

import logging
from datetime import datetime
from pathlib import Path

from archforge.core.paths import HostLayout, get_state_dir

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def log_file_name(kind: str, now: datetime | None = None) -> str:
    """Build the log file name for a run.

    Args:
        kind: Run kind, e.g. "install" or "repair".
        now: Timestamp to use. Defaults to the current local time.

    Returns:
        File name such as archforge-install-20260101-120000.log.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"archforge-{kind}-{stamp}.log"


def setup_run_log(kind: str, layout: HostLayout | None = None) -> Path:
    """Attach a file handler for this run to the archforge logger.

    Tries the layout's log directory first and falls back to the user
    state directory when it is not writable.

    Args:
        kind: Run kind used in the file name.
        layout: Host layout providing the log directory.

    Returns:
        Path of the log file actually in use.
    """
    layout = layout or HostLayout()
    name = log_file_name(kind)

    try:
        path = _open_log(layout.log_dir / name)
    except OSError as e:
        fallback = get_state_dir() / name
        logger.debug("Cannot write %s (%s), falling back to %s", layout.log_dir, e, fallback)
        path = _open_log(fallback)

    logger.info("Run log: %s", path)
    return path


def _open_log(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    try:
        path.chmod(0o600)
    except OSError as e:
        logger.debug("Could not restrict permissions on %s: %s", path, e)

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))

    root = logging.getLogger("archforge")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    return path


def configure_console_logging(verbose: bool = False) -> None:
    """Send archforge log records to stderr when verbose output is requested."""
    if not verbose:
        return
    root = logging.getLogger("archforge")
    if any(getattr(h, "_archforge_console", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    setattr(handler, "_archforge_console", True)
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
