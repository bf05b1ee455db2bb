"""noVNC/websockify bridge for the VM's VNC display.

The bridge runs in the background while QEMU is in the foreground. Its
PID is recorded in a file so a later reset can stop a bridge left over
from an earlier run.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path

from archforge.utils.formatting import print_command, print_info
from archforge.utils.shell import command_exists

logger = logging.getLogger(__name__)

WEB_ROOTS = (Path("/usr/share/novnc"), Path("/usr/share/webapps/novnc"))


def find_web_root(candidates: tuple[Path, ...] = WEB_ROOTS) -> Path | None:
    """Return the first noVNC directory containing vnc.html."""
    for candidate in candidates:
        if (candidate / "vnc.html").is_file():
            return candidate
    return None


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to someone else
        return True
    return True


class NoVncBridge:
    """Start and stop a websockify process serving noVNC.

    Attributes:
        pid_file: File recording the bridge PID.
        web_port: HTTP port the browser connects to.
        vnc_target: "host:port" of the QEMU VNC server.
        web_roots: Candidate noVNC installation directories.
    """

    def __init__(
        self,
        pid_file: Path,
        web_port: int,
        vnc_target: str,
        web_roots: tuple[Path, ...] = WEB_ROOTS,
    ) -> None:
        self.pid_file = pid_file
        self.web_port = web_port
        self.vnc_target = vnc_target
        self.web_roots = web_roots
        self._process: subprocess.Popen[bytes] | None = None

    def is_available(self) -> bool:
        """Check for websockify and a noVNC web root."""
        return command_exists("websockify") and find_web_root(self.web_roots) is not None

    def start(self) -> bool:
        """Launch websockify in the background.

        Returns:
            True if the bridge was started, False if its dependencies are
            missing or it could not be launched.
        """
        web_root = find_web_root(self.web_roots)
        if not command_exists("websockify") or web_root is None:
            logger.info("noVNC bridge unavailable (websockify or web root missing)")
            return False

        self.stop()
        argv = ["websockify", "--web", str(web_root), str(self.web_port), self.vnc_target]
        print_info(f"Starting noVNC: http://127.0.0.1:{self.web_port}/vnc.html")
        print_command("RUN", " ".join(argv))
        logger.info("Starting bridge: %s", argv)
        try:
            self._process = subprocess.Popen(
                argv,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.warning("Cannot start websockify: %s", e)
            return False

        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(f"{self._process.pid}\n", encoding="utf-8")
        return True

    def read_pid(self) -> int | None:
        """Return the recorded PID, or None if absent or unreadable."""
        try:
            return int(self.pid_file.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def stop(self) -> bool:
        """Stop a recorded bridge process and remove the PID file.

        Returns:
            True if a live process was signalled.
        """
        if not self.pid_file.exists():
            return False

        signalled = False
        pid = self.read_pid()
        if pid is not None and _pid_alive(pid):
            print_info(f"Stopping noVNC (PID {pid})")
            try:
                os.kill(pid, signal.SIGTERM)
                signalled = True
            except (ProcessLookupError, PermissionError) as e:
                logger.warning("Cannot stop PID %d: %s", pid, e)

        if self._process is not None and self._process.pid == pid:
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
            self._process = None

        self.pid_file.unlink(missing_ok=True)
        return signalled
