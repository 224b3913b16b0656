"""
Extraction process wrapper.

The extraction tool (yt-dlp by default) is treated as a black box: we give it
an argument vector, read media bytes from its stdout and log whatever it
prints on stderr.
"""

import collections
import logging
import re
import subprocess
import threading

from . import config

logger = logging.getLogger(__name__)

# Progress output is redrawn with bare carriage returns
LINE_BREAK_RE = re.compile(rb'[\r\n]')
MAX_STDERR_LINE = 64 * 1024
STDERR_TAIL = 50


class ExtractorLaunchError(Exception):
    """The extraction tool could not be started, or exited before writing anything."""

    def __init__(self, args, cause):
        self.args_list = list(args)
        self.cause = cause
        super().__init__(f"Failed to launch {self.args_list[0]!r}: {cause}")


def build_command(url, command=None, output_format=config.OUTPUT_FORMAT):
    """Argument vector that makes the tool write the selected media to stdout."""
    if command is None:
        command = config.EXTRACTOR_COMMAND
    # "--" so a url starting with "-" is never read as an option
    return list(command) + ['-f', output_format, '-o', '-', '--', url]


class ExtractionProcess:
    def __init__(self, proc, kill_timeout=config.KILL_TIMEOUT):
        self.proc = proc
        self.kill_timeout = kill_timeout
        self.stderr_lines = collections.deque(maxlen=STDERR_TAIL)
        self._stderr_thread = threading.Thread(
            target=self._drain_stderr, name=f"stderr-{proc.pid}", daemon=True
        )
        self._stderr_thread.start()

    @property
    def pid(self):
        return self.proc.pid

    @property
    def args(self):
        return self.proc.args

    @property
    def returncode(self):
        return self.proc.poll()

    @property
    def running(self):
        return self.proc.poll() is None

    def _log_stderr(self, raw):
        line = raw.decode('utf-8', errors='replace').rstrip()
        if line:
            self.stderr_lines.append(line)
            logger.warning(f"stderr: {line}")

    def _drain_stderr(self):
        # Must keep reading, a full stderr pipe would stall the child
        pending = b''
        for chunk in iter(lambda: self.proc.stderr.read1(4096), b''):
            *lines, pending = LINE_BREAK_RE.split(pending + chunk)
            for raw in lines:
                self._log_stderr(raw)
            if len(pending) > MAX_STDERR_LINE:
                self._log_stderr(pending)
                pending = b''
        self._log_stderr(pending)
        self.proc.stderr.close()

    def read_chunks(self, chunk_size=config.CHUNK_SIZE):
        """Yield stdout data as it arrives until the tool closes it."""
        while True:
            chunk = self.proc.stdout.read1(chunk_size)
            if not chunk:
                break
            yield chunk

    def wait(self, timeout=None):
        code = self.proc.wait(timeout=timeout)
        self._stderr_thread.join(timeout=1)
        return code

    def kill(self):
        """Stop the child if it is still alive and reap it."""
        if self.proc.poll() is None:
            self.proc.terminate()
            try:
                self.proc.wait(timeout=self.kill_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"Process {self.pid} ignored SIGTERM, killing")
                self.proc.kill()
        self.proc.stdout.close()
        return self.wait()


def spawn(args, kill_timeout=config.KILL_TIMEOUT):
    logger.info(f"Spawning: {' '.join(args)}")
    try:
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=10**6,
        )
    except (OSError, ValueError) as e:
        raise ExtractorLaunchError(args, e) from e
    return ExtractionProcess(proc, kill_timeout=kill_timeout)
