"""
Bounded worker pool of OCR engine handles.

The pool owns every handle and is the only place their busy flag and
language change. Execution is cooperative on one event loop, so claiming an
idle handle (scan and flag without awaiting) is atomic without a lock.
Waiters sleep on an event that release and resize set, instead of polling.
"""

import asyncio
import logging
from typing import List, Set, Tuple

from ...config.ocr_config import clamp_pool_size
from ...errors import EngineFailureError
from ...tools.vision.ocr_protocol import EngineBackend
from .engine_handle import EngineHandle

logger = logging.getLogger(__name__)


class WorkerPool:
    """
    Allocates engine handles to concurrent recognition requests.

    Handle assignment is first-idle-found, not FIFO: a request arriving while
    a handle is idle can win over one that has been waiting.
    """

    def __init__(self, backend: EngineBackend):
        """
        Initialize an empty pool. Handles are created by ensure_size().

        Args:
            backend: Library that builds engine instances
        """
        self._backend = backend
        self._handles: List[EngineHandle] = []
        self._desired_size = 0
        self._next_id = 0
        self._available = asyncio.Event()
        self._resize_lock = asyncio.Lock()
        self._pending_terminations: Set[asyncio.Task] = set()

    @property
    def backend(self) -> EngineBackend:
        return self._backend

    @property
    def size(self) -> int:
        return len(self._handles)

    @property
    def desired_size(self) -> int:
        return self._desired_size

    @property
    def handles(self) -> Tuple[EngineHandle, ...]:
        return tuple(self._handles)

    @property
    def idle_count(self) -> int:
        return sum(1 for h in self._handles if not h.busy)

    def _notify(self) -> None:
        self._available.set()

    async def ensure_size(self, size: int) -> int:
        """
        Grow or shrink the pool to ``size`` clamped into [1, 4].

        New handles are appended; excess handles are removed from the end and
        terminated. A removed handle that is still busy is terminated when it
        is released. Termination failures are logged and ignored.

        Args:
            size: Requested number of engines

        Returns:
            Pool size after the resize

        Raises:
            EngineFailureError: If a new engine cannot be constructed
        """
        target = clamp_pool_size(size)

        async with self._resize_lock:
            try:
                self._desired_size = target

                while len(self._handles) < target:
                    try:
                        handle = await EngineHandle.create(self._backend, self._next_id)
                    except Exception as e:
                        raise EngineFailureError(
                            f"Failed to create {self._backend.name} engine: {e}",
                            detail={"pool_size": len(self._handles), "target": target},
                        ) from e
                    self._next_id += 1
                    self._handles.append(handle)
                    self._notify()

                if len(self._handles) > target:
                    excess = self._handles[target:]
                    del self._handles[target:]
                    for handle in excess:
                        if handle.busy:
                            handle.retired = True
                        else:
                            await self._terminate_quietly(handle)
                    logger.debug(f"Shrunk worker pool to {target}")
            finally:
                self._notify()

        return len(self._handles)

    async def acquire(self, language: str) -> EngineHandle:
        """
        Claim an idle handle initialized for ``language``.

        Suspends until a handle is released when all are busy. Reinitialization
        is skipped when the handle already has the language, and is never
        attempted on an engine that cannot switch languages.

        Args:
            language: Language code the handle must recognize

        Returns:
            Busy EngineHandle owned by the caller until release()

        Raises:
            EngineFailureError: If the pool is empty or initialization fails
        """
        handle = await self._claim()
        try:
            await self._apply_language(handle, language)
        except asyncio.CancelledError:
            self.release(handle)
            raise
        except Exception as e:
            self.release(handle)
            raise EngineFailureError(
                f"Failed to initialize engine for language '{language}': {e}",
                detail={"language": language, "handle": handle.handle_id},
            ) from e
        return handle

    async def _claim(self) -> EngineHandle:
        while True:
            if not self._handles and not self._resize_lock.locked():
                raise EngineFailureError(
                    "Worker pool has no engines", detail={"pool_size": 0}
                )
            for handle in self._handles:
                if not handle.busy:
                    handle.busy = True
                    return handle
            self._available.clear()
            await self._available.wait()

    async def _apply_language(self, handle: EngineHandle, language: str) -> None:
        if handle.language == language:
            return

        if handle.language is not None and not handle.capabilities.can_switch_language:
            logger.warning(
                f"Engine {handle.handle_id} cannot switch from '{handle.language}' "
                f"to '{language}', recognizing with '{handle.language}'"
            )
            return

        await handle.initialize(language)
        handle.language = language

    def release(self, handle: EngineHandle) -> None:
        """
        Return a handle to the pool. Releasing an idle handle is a no-op.

        Args:
            handle: Handle obtained from acquire()
        """
        if not handle.busy:
            return
        handle.busy = False

        if handle.retired:
            task = asyncio.get_running_loop().create_task(
                self._terminate_quietly(handle)
            )
            self._pending_terminations.add(task)
            task.add_done_callback(self._pending_terminations.discard)
            return

        self._notify()

    async def destroy(self) -> None:
        """
        Terminate every engine and empty the pool.

        Shutdown operation for when the owning session closes; it must not race
        in-flight requests. Per-engine termination failures are ignored.
        """
        async with self._resize_lock:
            handles = self._handles
            self._handles = []
            self._desired_size = 0

            for handle in handles:
                handle.retired = True
                await self._terminate_quietly(handle)

            if self._pending_terminations:
                await asyncio.gather(*self._pending_terminations)

        self._notify()
        logger.debug(f"Destroyed worker pool ({len(handles)} engines)")

    async def _terminate_quietly(self, handle: EngineHandle) -> None:
        try:
            await handle.terminate()
        except Exception as e:
            logger.warning(f"Ignoring termination failure for engine {handle.handle_id}: {e}")
