import os
import subprocess
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, List, Mapping, Optional, Union
from p4wrapper.errors import SpawnError
from p4wrapper.utils.logging import logger

CHUNK_SIZE = 64 * 1024

@dataclass(frozen=True)
class ExecutionResult:
    start_time: datetime
    duration_ms: int
    output: bytes
    exit_code: int
    stdin_relayed: bool = True


class StdinRelay(threading.Thread):
    """Copies the caller's standard input into the child's stdin pipe.

    Runs alongside the wait for the child. The pipe is closed once the
    source reaches end-of-stream so the child sees end-of-input. Errors are
    recorded and logged, never raised, since the child may exit before it
    reads everything.

    The source is a binary stream or a raw file descriptor. A descriptor is
    read with os.read so a relay still blocked on a terminal holds no
    interpreter-level stream lock when the wrapper exits.
    """

    def __init__(self, source: Union[BinaryIO, int, None], sink: BinaryIO):
        super().__init__(name="stdin-relay", daemon=True)
        self.source = source
        self.sink = sink
        self.done = threading.Event()
        self.error: Optional[BaseException] = None

    def _read(self) -> bytes:
        if isinstance(self.source, int):
            return os.read(self.source, CHUNK_SIZE)
        return self.source.read(CHUNK_SIZE)

    def run(self) -> None:
        try:
            while self.source is not None:
                chunk = self._read()
                if not chunk:
                    break
                self.sink.write(chunk)
                self.sink.flush()
        except (OSError, ValueError) as e:
            self.error = e
            logger.warning("Stdin relay stopped early: %s", e)
        finally:
            try:
                self.sink.close()
            except OSError as e:
                logger.debug("Closing child stdin failed: %s", e)
            self.done.set()


def exit_status(returncode: Optional[int]) -> int:
    """Map a Popen return code to the code the wrapper exits with.

    A negative code means the child was killed by a signal and becomes -1,
    which the wrapper exits with as 255. An undeterminable status becomes 1.
    """
    if returncode is None:
        return 1
    if returncode < 0:
        return -1
    return returncode


class ProcessRunner:
    """Runs the wrapped executable once and captures its combined output."""

    def __init__(self, executable: str, env: Optional[Mapping[str, str]] = None):
        self.executable = executable
        self.env = env

    def _spawn(self, args: List[str]) -> subprocess.Popen:
        cmd = [self.executable] + list(args)
        logger.info("Executing command: %s", " ".join(cmd))
        env = dict(self.env) if self.env is not None else os.environ.copy()
        try:
            return subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env
            )
        except OSError as e:
            logger.error("Error executing %s: %s", self.executable, e)
            raise SpawnError(self.executable, e.strerror or str(e)) from e

    def run(self, args: List[str], stdin: Union[BinaryIO, int, None] = None) -> ExecutionResult:
        """Run the executable with args, relaying stdin, and wait for it to exit.

        Raises:
            SpawnError: If the executable could not be started
        """
        start_time = datetime.now().astimezone()
        started = time.monotonic()

        proc = self._spawn(args)
        relay = StdinRelay(stdin, proc.stdin)
        relay.start()

        output = proc.stdout.read()
        proc.stdout.close()
        proc.wait()

        duration_ms = max(0, int((time.monotonic() - started) * 1000))
        code = exit_status(proc.returncode)
        relayed = relay.done.is_set() and relay.error is None
        logger.debug("Child exited with %s after %d ms, stdin relay complete: %s",
                     proc.returncode, duration_ms, relayed)

        return ExecutionResult(
            start_time=start_time,
            duration_ms=duration_ms,
            output=output,
            exit_code=code,
            stdin_relayed=relayed
        )
