"""Data sources module - Feed retrieval with ordered fallback."""

from .base import DataSource, Payload
from .http import HTTPSource, get_async_client, close_async_client
from .manager import SourceChain

__all__ = [
    'DataSource',
    'Payload',
    'HTTPSource',
    'get_async_client',
    'close_async_client',
    'SourceChain',
]
