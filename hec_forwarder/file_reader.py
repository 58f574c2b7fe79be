"""Line sources for the host runner: whole-file reads and continuous tailing.

Files are decoded with ``errors="surrogateescape"`` so that lines which are
not valid UTF-8 reach the normalizer with their raw bytes intact.
"""

import logging
import os
import threading

logger = logging.getLogger(__name__)


def _open(path: str):
    return open(path, "r", encoding="utf-8", errors="surrogateescape")


def read_batch(path: str) -> list[str]:
    """Read all non-empty lines from a file, without trailing newlines."""
    with _open(path) as f:
        return [line.rstrip("\r\n") for line in f if line.strip()]


class FileTailer:
    """Follows a log file and calls ``on_line`` for every new line.

    ``on_idle`` is called whenever the file has no new data, before waiting
    ``poll_interval`` seconds; the runner uses it for time-based flushes.

    Handles:
    - File not yet existing (waits for creation)
    - Log rotation (inode change detection)
    - File truncation (seek back to start)
    """

    def __init__(
        self,
        path: str,
        shutdown_event: threading.Event,
        on_line,
        on_idle=None,
        poll_interval: float = 0.5,
        start_at_end: bool = True,
    ):
        self._path = path
        self._shutdown = shutdown_event
        self._on_line = on_line
        self._on_idle = on_idle
        self._poll_interval = poll_interval
        self._start_at_end = start_at_end
        self._file = None
        self._inode = None
        self._partial = ""

    def run(self):
        """Tail until shutdown_event is set."""
        self._wait_for_file()
        if self._shutdown.is_set():
            return

        self._open_file(seek_end=self._start_at_end)
        try:
            while not self._shutdown.is_set():
                if self._check_rotation() or self._check_truncation():
                    continue

                line = self._file.readline()
                if line:
                    self._handle(line)
                else:
                    if self._on_idle:
                        self._on_idle()
                    self._shutdown.wait(self._poll_interval)
        finally:
            self._close_file()

    def _handle(self, chunk: str):
        # readline() can return a partial line while the writer is mid-write
        if not chunk.endswith("\n"):
            self._partial += chunk
            return
        line = (self._partial + chunk).rstrip("\r\n")
        self._partial = ""
        if line.strip():
            self._on_line(line)

    def _wait_for_file(self):
        logged = False
        while not os.path.exists(self._path) and not self._shutdown.is_set():
            if not logged:
                logger.info("%s does not exist yet, polling every %.2fs", self._path, self._poll_interval)
                logged = True
            self._shutdown.wait(self._poll_interval)

    def _open_file(self, seek_end: bool = False):
        self._file = _open(self._path)
        self._inode = os.fstat(self._file.fileno()).st_ino
        if seek_end:
            self._file.seek(0, os.SEEK_END)
        logger.debug("Opened %s (inode=%d)", self._path, self._inode)

    def _close_file(self):
        if self._file:
            self._file.close()
            self._file = None

    def _check_rotation(self) -> bool:
        """Detect rotation by comparing inodes; drain the old file first."""
        try:
            current_inode = os.stat(self._path).st_ino
        except FileNotFoundError:
            return False

        if current_inode == self._inode:
            return False
        logger.info("File rotation detected for %s", self._path)
        for line in self._file:
            self._handle(line)
        if self._partial:
            self._handle("\n")
        self._close_file()
        self._open_file(seek_end=False)
        return True

    def _check_truncation(self) -> bool:
        try:
            file_size = os.path.getsize(self._path)
        except FileNotFoundError:
            return False

        if self._file.tell() > file_size:
            logger.info("File truncation detected for %s", self._path)
            self._file.seek(0)
            self._partial = ""
            return True
        return False
