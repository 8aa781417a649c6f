"""Transports delivering batches to their destination."""

from .base import Sender, SendError
from .file_sender import FileSender
from .http_sender import HTTPSender

__all__ = [
    "Sender",
    "SendError",
    "HTTPSender",
    "FileSender",
]
