"""
Capture sources for the CareAlert listener.

A capture source is the flaky, speech-recognizer-like primitive the
listening session keeps alive.  It is callback driven, like a browser
speech recognizer:

* ``start()`` is non-blocking and raises :class:`CaptureError` when the
  source is already running.
* activation, finalized results, errors and the end of a capture run are
  reported through the bound :class:`CaptureListener`.
* a run can end on its own at any time (silence, timeouts, EOF); the
  session decides whether to start it again.

Callbacks are always invoked on the event loop thread.
"""

from __future__ import annotations

import asyncio
import sys
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Protocol

import structlog

from ca_common.config import Settings
from ca_common.errors import CaptureError, UnsupportedEnvironment

logger = structlog.get_logger()

ReaderFactory = Callable[[], Awaitable[asyncio.StreamReader]]


class CaptureListener(Protocol):
    """Receiver of capture lifecycle callbacks."""

    def on_start(self) -> None: ...

    def on_result(self, text: str) -> None: ...

    def on_error(self, reason: str) -> None: ...

    def on_end(self) -> None: ...


class CaptureSource(ABC):
    """Base class every capture backend must implement."""

    name: str = "base"

    def __init__(self) -> None:
        self._listener: CaptureListener | None = None
        #: Set once the source can never produce input again.
        self.eof = asyncio.Event()

    def bind(self, listener: CaptureListener) -> None:
        """Attach the listener that receives lifecycle callbacks."""
        self._listener = listener

    @property
    def listener(self) -> CaptureListener:
        if self._listener is None:
            raise RuntimeError(f"capture source {self.name!r} has no listener bound")
        return self._listener

    async def prepare(self) -> None:
        """Acquire platform resources ahead of the first run.

        Raises:
            UnsupportedEnvironment: If the backend cannot run on this host.
        """

    @abstractmethod
    def start(self) -> None:
        """Begin a capture run.

        Raises:
            CaptureError: If a run is already in progress.
            UnsupportedEnvironment: If the backend cannot run on this host.
        """

    @abstractmethod
    def stop(self) -> None:
        """Request the current run to end; ``on_end`` follows."""


async def open_stdin_reader() -> asyncio.StreamReader:
    """Wrap the process stdin in an ``asyncio.StreamReader``.

    Raises:
        UnsupportedEnvironment: If stdin cannot be attached to the event loop
            (closed stdin, or a platform without pipe support).
    """
    if sys.stdin is None or sys.stdin.closed:
        raise UnsupportedEnvironment("stdin is not available")
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    except (NotImplementedError, OSError, ValueError) as exc:
        raise UnsupportedEnvironment(f"stdin cannot be read asynchronously: {exc}") from exc
    return reader


class LineCaptureSource(CaptureSource):
    """Treat each input line as one finalized recognition result.

    A run ends on its own after ``idle_timeout_s`` without input, the way
    speech recognizers stop on silence.  Lines starting with ``/`` are
    manual commands (``/น้ำ``) handed to *on_command* instead of the
    recognizer path.

    Args:
        reader_factory: Coroutine returning the stream to read from;
            opened once, by :meth:`prepare` or the first run.
        idle_timeout_s: Silence after which a run ends (``None`` = never).
        on_command: Callback for ``/keyword`` manual command lines.
    """

    name = "stdin"

    def __init__(
        self,
        reader_factory: ReaderFactory = open_stdin_reader,
        *,
        idle_timeout_s: float | None = 60.0,
        on_command: Callable[[str], object] | None = None,
    ) -> None:
        super().__init__()
        self._reader_factory = reader_factory
        self._reader: asyncio.StreamReader | None = None
        self._task: asyncio.Task[None] | None = None
        self.idle_timeout_s = idle_timeout_s
        self.on_command = on_command

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def prepare(self) -> None:
        if self._reader is None:
            self._reader = await self._reader_factory()

    def start(self) -> None:
        if self.running:
            raise CaptureError("capture already started")
        if self.eof.is_set():
            raise CaptureError("input exhausted")
        self._task = asyncio.get_running_loop().create_task(self._run(), name="line-capture")

    def stop(self) -> None:
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        listener = self.listener
        try:
            await self.prepare()
            assert self._reader is not None
            listener.on_start()
            while True:
                raw = await asyncio.wait_for(self._reader.readline(), self.idle_timeout_s)
                if not raw:
                    logger.info("capture_input_closed", source=self.name)
                    self.eof.set()
                    return
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                if line.startswith("/") and self.on_command is not None:
                    self.on_command(line[1:].strip())
                else:
                    listener.on_result(line)
        except asyncio.TimeoutError:
            logger.debug("capture_idle_timeout", source=self.name)
        except asyncio.CancelledError:
            pass
        except UnsupportedEnvironment as exc:
            listener.on_error(str(exc))
            self.eof.set()
        except (OSError, ValueError) as exc:
            listener.on_error(str(exc))
        finally:
            listener.on_end()


def resolve_capture_source(settings: Settings, **kwargs: object) -> CaptureSource:
    """Build the capture source named by ``settings.capture_backend``.

    Raises:
        UnsupportedEnvironment: If the backend is unknown on this host.
    """
    backend = settings.capture_backend.lower()
    if backend == LineCaptureSource.name:
        return LineCaptureSource(**kwargs)  # type: ignore[arg-type]
    raise UnsupportedEnvironment(f"capture backend {backend!r} is not available")
