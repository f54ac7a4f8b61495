"""Per-panel refresh state machine."""

import time

from collections.abc import Awaitable, Callable
from enum import StrEnum

from src.helpers.errors import RequestCancelled, classify_error
from src.helpers.logging import get_logger
from src.helpers.result import Err, PartialOk, Result
from src.polling.cache import SnapshotCache


logger = get_logger(__name__)


class PanelState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    DISPLAYING = "displaying"
    STALE = "stale"


type Fetcher[T] = Callable[[T | None], Awaitable[Result[T]]]
type Merger[T] = Callable[[T, T | None], T]


class Panel[T]:
    """One dashboard panel: a fetcher, its interval and its last good data.

    ``idle -> loading -> displaying | stale``. A refresh that fails, or
    whose value is judged implausible (all zero, empty), keeps the previous
    data and marks the panel stale. Cumulative panels pass a ``merge``
    function that folds new data into what is displayed.

    Attributes:
        name: Panel name
        interval: Seconds between refreshes
        state: Current state
        warnings: Warnings of the last partial result
        last_error: Message of the last failed refresh, if any
        last_updated: Monotonic time of the last successful refresh
    """

    def __init__(
        self,
        name: str,
        fetch: Fetcher[T],
        interval: float,
        *,
        is_plausible: Callable[[T], bool] | None = None,
        merge: Merger[T] | None = None,
        cache: SnapshotCache[T] | None = None,
    ) -> None:
        """Initialize panel.

        Args:
            name: Panel name used in logs and rendering
            fetch: Called with the displayed data (None at first) to get a result
            interval: Seconds between refreshes
            is_plausible: Rejects values that are likely provider hiccups
            merge: Combines a new value with the displayed one
            cache: Slot holding the displayed data
        """
        self.name = name
        self.fetch = fetch
        self.interval = interval
        self.is_plausible = is_plausible
        self.merge = merge
        self.cache: SnapshotCache[T] = cache if cache is not None else SnapshotCache()
        self.state = PanelState.IDLE
        self.warnings: tuple[str, ...] = ()
        self.last_error: str | None = None
        self.last_updated: float | None = None

    @property
    def data(self) -> T | None:
        return self.cache.read()

    def _mark_stale(self, reason: str) -> PanelState:
        self.last_error = reason
        self.state = PanelState.STALE
        return self.state

    async def refresh(self) -> PanelState:
        """Fetch once and update displayed data.

        Returns:
            PanelState: ``DISPLAYING`` after an accepted value, else ``STALE``

        Raises:
            RequestCancelled: Propagated from the fetcher
        """
        self.state = PanelState.LOADING
        previous = self.cache.read()

        try:
            result = await self.fetch(previous)
        except RequestCancelled:
            raise
        except Exception as e:
            logger.warning("%s refresh failed: %s", self.name, e)
            return self._mark_stale(f"{classify_error(e)}: {e}")

        if isinstance(result, Err):
            logger.debug("%s kept previous data: %s", self.name, result.message)
            return self._mark_stale(f"{result.kind}: {result.message}")

        value = result.value
        if self.is_plausible is not None and not self.is_plausible(value):
            logger.debug("%s ignored implausible refresh", self.name)
            return self._mark_stale("implausible refresh")

        if self.merge is not None:
            value = self.merge(value, previous)

        self.cache.write(value)
        self.warnings = result.warnings if isinstance(result, PartialOk) else ()
        self.last_error = None
        self.last_updated = time.monotonic()
        self.state = PanelState.DISPLAYING
        return self.state


__all__ = ["Fetcher", "Merger", "Panel", "PanelState"]
