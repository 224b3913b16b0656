import enum
import itertools
import logging

from . import config
from .extractor import ExtractorLaunchError

logger = logging.getLogger(__name__)


class RelayState(enum.Enum):
    RECEIVED = 'received'
    PROCESS_SPAWNED = 'process_spawned'
    STREAMING = 'streaming'
    COMPLETED = 'completed'
    ABORTED = 'aborted'


class RelayAborted(Exception):
    """The body stopped early; the response must not be terminated cleanly."""


class Relay:
    """
    Forward one extraction process's stdout as a response body.

    Nothing is buffered beyond a single chunk. start() waits for that first
    chunk so a tool that dies without output can still be answered with an
    error status. Once bytes have gone out there is no way to report an
    error, so a later failure is raised out of the body iterator and the
    server drops the connection instead of ending the transfer normally.
    """

    def __init__(self, url, process=None):
        self.url = url
        self.process = None
        self.state = RelayState.RECEIVED
        self.bytes_sent = 0
        self._chunks = None
        self._first = b''
        if process is not None:
            self.attach(process)

    def attach(self, process):
        self.process = process
        self.state = RelayState.PROCESS_SPAWNED

    def abort(self, reason):
        self.state = RelayState.ABORTED
        logger.warning(f"Relay aborted for {self.url}: {reason} ({self.bytes_sent} bytes sent)")

    @property
    def finished(self):
        return self.state in (RelayState.COMPLETED, RelayState.ABORTED)

    def start(self, chunk_size=config.CHUNK_SIZE):
        """Block until the tool writes something or exits."""
        if self.process is None:
            raise RuntimeError("No process attached")
        self._chunks = self.process.read_chunks(chunk_size)
        self._first = next(self._chunks, b'')
        if self._first:
            return
        code = self.process.wait()
        if code != 0:
            self.process.kill()
            self.abort(f"extractor exited with {code} before writing output")
            raise ExtractorLaunchError(self.process.args, f"exited with status {code}")

    def stream(self, chunk_size=config.CHUNK_SIZE):
        if self._chunks is None:
            self.start(chunk_size)
        chunks = itertools.chain([self._first], self._chunks) if self._first else self._chunks
        try:
            for chunk in chunks:
                if self.state is RelayState.PROCESS_SPAWNED:
                    self.state = RelayState.STREAMING
                self.bytes_sent += len(chunk)
                yield chunk
            code = self.process.wait()
            if code != 0:
                self.abort(f"extractor exited with {code}")
                raise RelayAborted(f"extractor exited with {code}")
            self.state = RelayState.COMPLETED
            logger.info(f"Finished {self.url}: {self.bytes_sent} bytes")
        except GeneratorExit:
            # Client went away mid-stream
            self.abort("client disconnected")
            raise
        except (OSError, ValueError) as e:
            self.abort(f"read failed: {e}")
            raise RelayAborted(f"read failed: {e}") from e
        finally:
            self.process.kill()
