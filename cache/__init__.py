"""Cache module - Time-limited fetch and parse cache."""

from .cache_manager import FetchCache, LoadResult

__all__ = ['FetchCache', 'LoadResult']
