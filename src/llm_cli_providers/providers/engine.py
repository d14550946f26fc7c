"""Subprocess execution engine shared by every CLI provider.

One `ExecutionEngine.run` call drives one child process to exactly one
terminal state. Three triggers compete for it: the process exiting, the
wall-clock timeout, and an external `CancellationToken`. Whichever claims the
resolution latch first wins; later claims are ignored.

Timeout and cancellation both terminate the child in two phases. The graceful
phase writes ETX to stdin when it is still writable and sends an interrupt to
the child's process group. If the child is still alive after the grace
window, or nothing graceful could be attempted, the group is killed. The
result is returned as soon as the trigger fires; termination finishes on a
background thread (`wait_terminated` joins it).
"""

from __future__ import annotations

import logging
import math
import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from functools import partial
from typing import IO

from llm_cli_providers.config import ExecutionSettings, is_positive_seconds
from llm_cli_providers.providers.models import (
    Command,
    ExecutionState,
    ProcessResult,
    ProgressCallback,
    ProgressUpdate,
)

logger = logging.getLogger(__name__)

INTERRUPT_BYTE = b"\x03"
MAX_ESTIMATED_PERCENT = 95

_READ_CHUNK_BYTES = 64 * 1024
_WRITE_CHUNK_BYTES = 64 * 1024
_DRAIN_TIMEOUT_SECONDS = 5.0


def estimate_progress(elapsed_seconds: float, timeout_seconds: float) -> int:
    """Estimate completion percent from elapsed time.

    Grows quickly at first and flattens towards the timeout; capped at 95 so
    completion is only ever reported by a terminal event.
    """

    if timeout_seconds <= 0:
        return MAX_ESTIMATED_PERCENT
    ratio = max(0.0, elapsed_seconds) / timeout_seconds
    return min(MAX_ESTIMATED_PERCENT, round(100 * (1 - math.exp(-3 * ratio))))


class CancellationToken:
    """Thread-safe cancellation signal; `cancel` is idempotent."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Request cancellation. Returns False if it was already requested."""

        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            listeners = list(self._listeners)
            self._listeners.clear()
        for listener in listeners:
            listener()
        return True

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a one-shot listener and return a function that detaches it.

        A listener added after cancellation runs immediately.
        """

        with self._lock:
            if not self._cancelled:
                self._listeners.append(listener)
                return partial(self._remove_listener, listener)
        listener()
        return _noop

    def _remove_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)


def _noop() -> None:
    return None


class _ResolutionLatch:
    """First claim wins; every later claim is a no-op."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resolved = threading.Event()
        self._state: ExecutionState | None = None

    @property
    def state(self) -> ExecutionState | None:
        return self._state

    def claim(self, state: ExecutionState) -> bool:
        with self._lock:
            if self._state is not None:
                return False
            self._state = state
        self._resolved.set()
        return True

    def wait(self, timeout: float) -> bool:
        return self._resolved.wait(timeout)


class _CappedBuffer:
    """Keeps the first `limit` bytes of a stream and counts the rest."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._lock = threading.Lock()
        self._chunks: list[bytes] = []
        self._kept = 0
        self._seen = 0

    @property
    def bytes_seen(self) -> int:
        return self._seen

    @property
    def truncated(self) -> bool:
        return self._seen > self._limit

    def append(self, chunk: bytes) -> bool:
        """Store a chunk; returns True when this chunk crossed the cap."""

        with self._lock:
            was_truncated = self._seen > self._limit
            self._seen += len(chunk)
            room = self._limit - self._kept
            if room > 0:
                kept = chunk[:room]
                self._chunks.append(kept)
                self._kept += len(kept)
            return not was_truncated and self._seen > self._limit

    def text(self) -> str:
        with self._lock:
            return b"".join(self._chunks).decode("utf-8", errors="replace")


class _StdinChannel:
    """Child stdin that is closed exactly once."""

    def __init__(self, stream: IO[bytes] | None) -> None:
        self._stream = stream
        self._lock = threading.Lock()
        self._closed = stream is None
        self.bytes_written = 0

    def feed(self, payload: bytes) -> None:
        """Write the payload and close; runs on the writer thread."""

        view = memoryview(payload)
        try:
            while view:
                with self._lock:
                    if self._closed or self._stream is None:
                        return
                    written = self._stream.write(view[:_WRITE_CHUNK_BYTES]) or 0
                self.bytes_written += written
                view = view[written:]
        except (OSError, ValueError) as error:
            logger.debug("CLI stdin write stopped: %s", error)
        finally:
            self.close()

    def close(self) -> bool:
        with self._lock:
            if self._closed or self._stream is None:
                return False
            self._closed = True
            stream = self._stream
        _close_quietly(stream)
        return True

    def interrupt(self) -> bool:
        """Write ETX and close if stdin is still open and idle."""

        if not self._lock.acquire(blocking=False):
            return False
        try:
            if self._closed or self._stream is None:
                return False
            self._closed = True
            sent = _write_nonblocking(self._stream, INTERRUPT_BYTE)
            _close_quietly(self._stream)
            return sent
        finally:
            self._lock.release()


class _ProgressReporter:
    """Emits monotonic progress until the run resolves."""

    def __init__(
        self,
        callback: ProgressCallback | None,
        *,
        timeout_seconds: float,
        started: float,
        stdin: _StdinChannel,
        stdout: _CappedBuffer,
    ) -> None:
        self._callback = callback
        self._timeout = timeout_seconds
        self._started = started
        self._stdin = stdin
        self._stdout = stdout
        self._lock = threading.Lock()
        self._last_percent = 0
        self._stopped = False

    def report(self, stage: str = "processing") -> None:
        if self._callback is None:
            return
        with self._lock:
            if self._stopped:
                return
            elapsed = time.monotonic() - self._started
            percent = max(self._last_percent, estimate_progress(elapsed, self._timeout))
            self._last_percent = percent
            self._emit(percent, stage)

    def stop(self) -> None:
        with self._lock:
            self._stopped = True

    def complete(self) -> None:
        if self._callback is None:
            return
        with self._lock:
            self._stopped = True
            self._last_percent = 100
            self._emit(100, "completed")

    def _emit(self, percent: int, stage: str) -> None:
        update = ProgressUpdate(
            percent=percent,
            stage=stage,
            stdin_bytes=self._stdin.bytes_written,
            stdout_bytes=self._stdout.bytes_seen,
        )
        try:
            self._callback(update)  # type: ignore[misc]
        except Exception:
            logger.exception("Progress callback failed: stage=%s percent=%d", stage, percent)


class ExecutionEngine:
    """Run one external process per call and resolve it to a `ProcessResult`."""

    def __init__(self, settings: ExecutionSettings | None = None) -> None:
        self._settings = settings or ExecutionSettings()
        self.state = ExecutionState.IDLE
        self._background: list[threading.Thread] = []

    def run(
        self,
        command: Command,
        *,
        timeout_seconds: float | None = None,
        cancellation: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessResult:
        """Execute `command`; never raises for timeout, cancel, exit or spawn errors."""

        timeout = self._settings.timeout_seconds if timeout_seconds is None else timeout_seconds
        if not is_positive_seconds(timeout):
            raise ValueError(f"timeout_seconds must be > 0, got {timeout!r}")

        started = time.monotonic()
        self._background = []

        if cancellation is not None and cancellation.cancelled:
            self.state = ExecutionState.CANCELLED
            logger.info("CLI run cancelled before start: executable=%s", command.executable)
            return ProcessResult(
                state=ExecutionState.CANCELLED,
                success=False,
                exit_code=None,
                stdout="",
                stderr="",
                cancelled=True,
                timeout_seconds=timeout,
            )

        env = os.environ.copy()
        env.update(command.env)
        try:
            process = subprocess.Popen(  # noqa: S603
                list(command.argv),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                cwd=command.cwd,
                bufsize=0,
                **_process_group_kwargs(),
            )
        except OSError as error:
            self.state = ExecutionState.SPAWN_FAILED
            logger.warning(
                "CLI spawn failed: executable=%s error=%s",
                command.executable,
                error,
            )
            return ProcessResult(
                state=ExecutionState.SPAWN_FAILED,
                success=False,
                exit_code=None,
                stdout="",
                stderr=str(error),
                spawn_failed=True,
                timeout_seconds=timeout,
                duration_seconds=time.monotonic() - started,
            )

        self.state = ExecutionState.RUNNING
        logger.info(
            "CLI process started: pid=%s executable=%s timeout=%.1fs stdin_chars=%d",
            process.pid,
            command.executable,
            timeout,
            len(command.stdin or ""),
        )

        latch = _ResolutionLatch()
        stdout = _CappedBuffer(self._settings.max_output_bytes)
        stderr = _CappedBuffer(self._settings.max_output_bytes)
        stdin = _StdinChannel(process.stdin)
        progress = _ProgressReporter(
            on_progress,
            timeout_seconds=timeout,
            started=started,
            stdin=stdin,
            stdout=stdout,
        )
        progress.report(stage="started")

        readers = [
            self._start_thread(
                _read_stream,
                process.stdout,
                stdout,
                "stdout",
                progress.report,
                name=f"cli-stdout-{process.pid}",
            ),
            self._start_thread(
                _read_stream,
                process.stderr,
                stderr,
                "stderr",
                None,
                name=f"cli-stderr-{process.pid}",
            ),
        ]
        payload = (command.stdin or "").encode("utf-8")
        if payload:
            self._start_thread(stdin.feed, payload, name=f"cli-stdin-{process.pid}")
        else:
            stdin.close()

        exit_codes: list[int] = []
        self._start_thread(
            _watch_exit,
            process,
            readers,
            latch,
            exit_codes,
            name=f"cli-exit-{process.pid}",
        )

        detach = _noop
        if cancellation is not None:
            detach = cancellation.add_listener(partial(latch.claim, ExecutionState.CANCELLED))

        deadline = started + timeout
        tick = self._settings.progress_tick_seconds
        try:
            while not latch.wait(min(tick, max(0.0, deadline - time.monotonic()))):
                if time.monotonic() >= deadline:
                    latch.claim(ExecutionState.TIMED_OUT)
                    break
                progress.report()
        finally:
            detach()
            progress.stop()

        state = latch.state or ExecutionState.TIMED_OUT
        self.state = state
        duration = time.monotonic() - started

        if state in (ExecutionState.TIMED_OUT, ExecutionState.CANCELLED):
            logger.warning(
                "CLI process %s: pid=%s elapsed=%.1fs, terminating",
                "timed out" if state is ExecutionState.TIMED_OUT else "cancelled",
                process.pid,
                duration,
            )
            self._start_thread(
                _terminate,
                process,
                stdin,
                self._settings.grace_seconds,
                name=f"cli-terminate-{process.pid}",
            )

        exit_code: int | None = None
        signal_name: str | None = None
        if state is ExecutionState.COMPLETED and exit_codes:
            exit_code, signal_name = _split_returncode(exit_codes[0])

        result = ProcessResult(
            state=state,
            success=state is ExecutionState.COMPLETED and exit_code == 0,
            exit_code=exit_code,
            stdout=stdout.text(),
            stderr=stderr.text(),
            signal=signal_name,
            timed_out=state is ExecutionState.TIMED_OUT,
            cancelled=state is ExecutionState.CANCELLED,
            timeout_seconds=timeout,
            duration_seconds=duration,
            stdout_truncated=stdout.truncated,
            stderr_truncated=stderr.truncated,
            pid=process.pid,
        )
        if result.success:
            progress.complete()
        logger.info(
            "CLI process resolved: pid=%s state=%s exit_code=%s signal=%s "
            "duration=%.2fs stdout_bytes=%d stderr_bytes=%d",
            process.pid,
            state.value,
            exit_code,
            signal_name,
            duration,
            stdout.bytes_seen,
            stderr.bytes_seen,
        )
        return result

    def wait_terminated(self, timeout: float | None = None) -> bool:
        """Join background threads of the last run; True when all finished."""

        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._background:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return not any(thread.is_alive() for thread in self._background)

    def _start_thread(
        self,
        target: Callable[..., None],
        *args: object,
        name: str,
    ) -> threading.Thread:
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        thread.start()
        self._background.append(thread)
        return thread


def _read_stream(
    stream: IO[bytes] | None,
    buffer: _CappedBuffer,
    label: str,
    on_chunk: Callable[[], None] | None,
) -> None:
    if stream is None:
        return
    try:
        while True:
            chunk = stream.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            if buffer.append(chunk):
                logger.warning(
                    "CLI %s exceeded capture limit; keeping the first bytes only",
                    label,
                )
            if on_chunk is not None:
                on_chunk()
    except (OSError, ValueError) as error:
        logger.debug("CLI %s reader stopped: %s", label, error)
    finally:
        _close_quietly(stream)


def _watch_exit(
    process: subprocess.Popen[bytes],
    readers: list[threading.Thread],
    latch: _ResolutionLatch,
    exit_codes: list[int],
) -> None:
    returncode = process.wait()
    for reader in readers:
        reader.join(_DRAIN_TIMEOUT_SECONDS)
    exit_codes.append(returncode)
    if not latch.claim(ExecutionState.COMPLETED):
        logger.debug("CLI process exited after resolution: pid=%s code=%s", process.pid, returncode)


def _terminate(
    process: subprocess.Popen[bytes],
    stdin: _StdinChannel,
    grace_seconds: float,
) -> None:
    if process.poll() is not None:
        return
    graceful = stdin.interrupt()
    graceful = _send_interrupt(process) or graceful
    if graceful and grace_seconds > 0:
        try:
            process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            logger.info("CLI process ignored interrupt: pid=%s, killing", process.pid)
        else:
            return
    _force_kill(process)


def _process_group_kwargs() -> dict[str, object]:
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _send_interrupt(process: subprocess.Popen[bytes]) -> bool:
    try:
        if os.name == "nt":
            process.send_signal(signal.CTRL_BREAK_EVENT)
        else:
            os.killpg(process.pid, signal.SIGINT)
    except OSError:
        return False
    return True


def _force_kill(process: subprocess.Popen[bytes]) -> None:
    if process.poll() is not None:
        return
    if os.name != "nt":
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        except OSError:
            pass
        else:
            return
    try:
        process.kill()
    except OSError:
        return


def _split_returncode(returncode: int) -> tuple[int | None, str | None]:
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, str(-returncode)


def _write_nonblocking(stream: IO[bytes], data: bytes) -> bool:
    # a full pipe must not stall termination
    try:
        os.set_blocking(stream.fileno(), False)
        return bool(stream.write(data))
    except (OSError, ValueError):
        return False


def _close_quietly(stream: IO[bytes]) -> None:
    try:
        stream.close()
    except OSError as error:
        logger.debug("CLI stream close failed: %s", error)
