"""Generator capability consumed by the pipeline."""

from abc import ABC, abstractmethod


class Generator(ABC):
    """
    Produces one batch of bytes per call.

    generate() raises on failure; the pipeline logs the error and calls it
    again. rate is the number of items represented by one batch and is only
    used for the lines counter.
    """

    @abstractmethod
    def generate(self) -> bytes:
        """Build one batch."""
        pass

    @property
    @abstractmethod
    def rate(self) -> int:
        """Items per batch."""
        pass
