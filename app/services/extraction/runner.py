"""Runners executing one extraction strategy with a timeout.

``ProcessRunner`` runs each call in a fresh spawned process so a crash inside
a PDF parser (including a hard interpreter crash) only fails that attempt.
``InlineRunner`` runs in a worker thread of the current process.
"""

import asyncio
import multiprocessing
from typing import Callable

from app.core.exceptions import StrategyError
from app.services.extraction.strategies import StrategyOutput
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

Strategy = Callable[[bytes], StrategyOutput]


def _run_in_child(strategy: Strategy, data: bytes, conn) -> None:
    try:
        conn.send(("ok", strategy(data)))
    except Exception as e:
        conn.send(("error", f"{type(e).__name__}: {e}"))
    finally:
        conn.close()


class ProcessRunner:
    """Execute a strategy in an isolated child process."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._context = multiprocessing.get_context("spawn")

    async def run(self, strategy: Strategy, data: bytes) -> StrategyOutput:
        """Run the strategy and return its output.

        Raises:
            StrategyError: If the strategy raised, crashed or timed out
        """
        parent_conn, child_conn = self._context.Pipe(duplex=False)
        process = self._context.Process(target=_run_in_child, args=(strategy, data, child_conn), daemon=True)
        process.start()
        child_conn.close()

        loop = asyncio.get_running_loop()
        try:
            ready = await loop.run_in_executor(None, parent_conn.poll, self.timeout)
            if not ready:
                process.kill()
                raise StrategyError(f"timed out after {self.timeout}s")
            try:
                status, payload = parent_conn.recv()
            except EOFError:
                await loop.run_in_executor(None, process.join, 5)
                raise StrategyError(f"worker process exited with code {process.exitcode}")
        finally:
            parent_conn.close()
            if process.is_alive():
                process.kill()
            await loop.run_in_executor(None, process.join, 5)

        if status != "ok":
            raise StrategyError(payload)
        return payload


class InlineRunner:
    """Execute a strategy in a thread of the current process."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def run(self, strategy: Strategy, data: bytes) -> StrategyOutput:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, strategy, data), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StrategyError(f"timed out after {self.timeout}s") from e
        except StrategyError:
            raise
        except Exception as e:
            raise StrategyError(f"{type(e).__name__}: {e}", original_error=e) from e
