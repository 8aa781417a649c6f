"""Sender capability consumed by the pipeline."""

from abc import ABC, abstractmethod


class SendError(Exception):
    """Raised by a sender when a batch could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Sender(ABC):
    """
    Transmits one batch to a remote endpoint.

    send() returns on success and raises on failure. The pipeline treats any
    exception as a failed delivery; there is no transient/permanent split.
    """

    @abstractmethod
    def send(self, batch: bytes) -> None:
        """Deliver one batch."""
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
