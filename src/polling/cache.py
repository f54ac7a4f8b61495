"""Single-slot "last known good" snapshot cache."""

from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.helpers.logging import get_logger


logger = get_logger(__name__)


class SnapshotCache[T]:
    """Holds the last successfully displayed value of one panel.

    There is no eviction: a write overwrites the slot and ``clear`` empties
    it. When ``path`` is given the slot is mirrored to a JSON file, so the
    last snapshot survives a restart; ``value_type`` is then required to
    validate what is read back.

    Example:
        ```python
        cache = SnapshotCache(list[TopContract], path=Path(".cache/top_contracts.json"))
        cache.write(contracts)
        cache.read()  # -> contracts, also after a restart
        ```
    """

    def __init__(self, value_type: Any = None, path: Path | None = None) -> None:
        """Initialize cache.

        Args:
            value_type: Type of the cached value, used for file round trips
            path: Optional JSON file backing the slot

        Raises:
            ValueError: If path is given without value_type
        """
        if path is not None and value_type is None:
            msg = "value_type is required for a file-backed cache"
            raise ValueError(msg)

        self.path = path
        self._adapter: TypeAdapter[T] | None = (
            TypeAdapter(value_type) if value_type is not None else None
        )
        self._value: T | None = None
        self._load()

    def _load(self) -> None:
        if self.path is None or self._adapter is None or not self.path.exists():
            return
        try:
            self._value = self._adapter.validate_json(self.path.read_bytes())
            logger.debug("Loaded snapshot from %s", self.path)
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, e)

    def read(self) -> T | None:
        """Return the cached value, None when empty."""
        return self._value

    def write(self, value: T) -> None:
        """Replace the cached value."""
        self._value = value
        if self.path is None or self._adapter is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(self._adapter.dump_json(value))
        except OSError as e:
            logger.warning("Could not persist snapshot to %s: %s", self.path, e)

    def clear(self) -> None:
        """Empty the slot and remove its backing file."""
        self._value = None
        if self.path is not None:
            self.path.unlink(missing_ok=True)


__all__ = ["SnapshotCache"]
