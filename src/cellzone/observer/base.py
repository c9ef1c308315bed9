"""Base interface for network cell observers."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from cellzone.cells.models import NetworkType
from cellzone.cells.normalizer import CellSighting


class BaseObserver(ABC):
    """Abstract base for all cell-location sources.

    The network type is fixed when the observer is created; every
    sighting it emits carries that type.
    """

    network_type: NetworkType

    @abstractmethod
    async def start(self) -> None:
        """Start observing cell changes."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop observing."""

    @abstractmethod
    def on_event(self, callback: Callable[[CellSighting], object]) -> None:
        """Register a callback for new sightings."""
