"""Polling shell: refreshes every panel on its own fixed interval."""

import asyncio

from typing import Any

from src.helpers.errors import RequestCancelled
from src.helpers.logging import get_logger
from src.polling.panel import Panel


logger = get_logger(__name__)


class PollingShell:
    """Runs one asyncio task per panel until stopped.

    A failing panel never stops the shell or other panels. ``stop`` is
    cooperative: tasks finish the refresh in progress before exiting.

    Example:
        ```python
        shell = PollingShell(build_default_panels(ctx))
        task = asyncio.create_task(shell.run())
        ...
        shell.stop()
        await task
        ```
    """

    def __init__(self, panels: list[Panel[Any]]) -> None:
        self.panels = {panel.name: panel for panel in panels}
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask every panel loop to exit after its current refresh."""
        logger.info("Stopping polling shell")
        self._stop.set()

    async def refresh_all(self) -> None:
        """Refresh every panel once, concurrently."""
        await asyncio.gather(*[self._refresh(panel) for panel in self.panels.values()])

    async def _refresh(self, panel: Panel[Any]) -> None:
        try:
            await panel.refresh()
        except RequestCancelled:
            logger.debug("%s refresh cancelled", panel.name)
        except Exception:
            # Panel.refresh already degrades; this guards merge/plausibility bugs
            logger.exception("%s refresh crashed", panel.name)

    async def _poll(self, panel: Panel[Any]) -> None:
        while not self._stop.is_set():
            await self._refresh(panel)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=panel.interval)
            except TimeoutError:
                continue

    async def run(self) -> None:
        """Poll all panels until ``stop`` is called."""
        logger.info("Polling %d panels", len(self.panels))
        self._stop.clear()
        tasks = [
            asyncio.create_task(self._poll(panel), name=f"poll-{name}")
            for name, panel in self.panels.items()
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["PollingShell"]
