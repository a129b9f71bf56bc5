"""
Time-bounded memoization for completion-service results.

`TTLCache` holds values for a fixed TTL and evicts lazily when an expired key
is read. `SingleFlight` makes concurrent callers for the same key share one
in-flight call instead of each hitting the service. Both are plain objects
owned by the application (see `main.py`) and handed to routers as
dependencies; nothing here is module-global.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

from .errors import ExternalServiceError, ExternalServiceErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60 * 60


@dataclass
class _Entry(Generic[T]):
	value: T
	inserted_at: float


class TTLCache(Generic[T]):
	"""
	Key -> value mapping whose entries expire `ttl_seconds` after insertion.

	Example:
		>>> cache = TTLCache(ttl_seconds=60)
		>>> cache.set("k", 1)
		>>> cache.get("k")
		1
	"""

	def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, *, clock: Callable[[], float] = time.monotonic) -> None:
		self._ttl = ttl_seconds
		self._clock = clock
		self._entries: Dict[str, _Entry[T]] = {}

	def get(self, key: str) -> Optional[T]:
		entry = self._entries.get(key)
		if entry is None:
			return None
		if self._clock() - entry.inserted_at > self._ttl:
			del self._entries[key]
			logger.debug("cache entry expired: %s", key)
			return None
		return entry.value

	def set(self, key: str, value: T) -> None:
		self._entries[key] = _Entry(value=value, inserted_at=self._clock())

	def clear(self) -> None:
		self._entries.clear()

	def __len__(self) -> int:
		return len(self._entries)


class SingleFlight(Generic[T]):
	"""Coalesce concurrent calls per key onto one shared future."""

	def __init__(self) -> None:
		self._in_flight: Dict[str, asyncio.Future[T]] = {}

	def in_flight(self, key: str) -> bool:
		return key in self._in_flight

	async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
		existing = self._in_flight.get(key)
		if existing is not None:
			logger.debug("joining in-flight call: %s", key)
			return await asyncio.shield(existing)

		future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
		self._in_flight[key] = future
		try:
			result = await fn()
		except asyncio.CancelledError:
			# Only the leader was cancelled; followers get a normal failure instead.
			future.set_exception(ExternalServiceError(
				ExternalServiceErrorKind.UPSTREAM_FAILURE,
				"in-flight request was cancelled",
			))
			future.exception()
			raise
		except Exception as exc:
			future.set_exception(exc)
			# Followers re-raise it; mark retrieved so an unshared failure isn't logged as lost.
			future.exception()
			raise
		else:
			future.set_result(result)
			return result
		finally:
			self._in_flight.pop(key, None)


class CachedProducer(Generic[T]):
	"""A `TTLCache` in front of a `SingleFlight`: at most one upstream call per key at a time."""

	def __init__(self, cache: TTLCache[T], flights: Optional[SingleFlight[T]] = None) -> None:
		self.cache = cache
		self.flights = flights or SingleFlight()

	async def get_or_create(self, key: str, fn: Callable[[], Awaitable[T]]) -> tuple[T, bool]:
		"""Return `(value, cached)`; `cached` is True when no new upstream call was made by this caller."""
		hit = self.cache.get(key)
		if hit is not None:
			logger.info("cache hit: %s", key)
			return hit, True

		joined = self.flights.in_flight(key)

		async def produce() -> T:
			value = await fn()
			self.cache.set(key, value)
			return value

		value = await self.flights.do(key, produce)
		if not joined:
			logger.info("cache miss: %s", key)
		return value, joined


def content_key(namespace: str, text: str) -> str:
	digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
	return f"{namespace}:{digest}"
