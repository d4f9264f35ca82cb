"""
Record Source
=============

Pulls yield pools from the DeFiLlama yields API and keeps the target
chain's rows in a time-boxed in-memory cache.

Cache policy:
- A pull younger than the TTL is served as-is
- An expired pull triggers a fetch
- If the fetch fails, the expired pull is served rather than nothing
"""

import threading
import time
from typing import Callable, List, Optional

import httpx

from config.settings import settings
from .models import Record, parse_records


class RecordSource:
    """
    Fetches and caches Records for a single chain.

    `fetched_at` changes only when a fetch succeeds, so callers can tell
    a fresh pull from a cached one.
    """

    def __init__(
        self,
        pools_url: Optional[str] = None,
        chain: Optional[str] = None,
        cache_ttl_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize record source.

        Args:
            pools_url: Upstream pools endpoint
            chain: Chain name rows must match
            cache_ttl_seconds: Age after which a pull is refetched
            timeout_seconds: HTTP timeout
            client: Optional pre-configured httpx client
            clock: Time source, seconds
        """
        self.pools_url = pools_url or settings.source.pools_url
        self.chain = chain or settings.source.chain
        self.cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None
            else settings.source.cache_ttl_seconds
        )
        self.timeout_seconds = timeout_seconds or settings.source.timeout_seconds

        self._client = client
        self._clock = clock

        self._lock = threading.Lock()
        self._records: Optional[List[Record]] = None
        self._fetched_at: Optional[float] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout_seconds,
                follow_redirects=True
            )
        return self._client

    @property
    def fetched_at(self) -> Optional[float]:
        """Timestamp of the last successful pull."""
        return self._fetched_at

    def is_fresh(self) -> bool:
        """True if a cached pull exists and is younger than the TTL."""
        if self._records is None or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self.cache_ttl_seconds

    def fetch(self, force_refresh: bool = False) -> List[Record]:
        """
        Get Records for the target chain.

        Args:
            force_refresh: Bypass the cache

        Returns:
            List of Records, empty if nothing could be fetched
        """
        with self._lock:
            if not force_refresh and self.is_fresh():
                print(f"[RecordSource] Using cached {self.chain} yield data")
                return list(self._records)

            print(f"[RecordSource] Fetching fresh {self.chain} yield data")

            try:
                records = self._fetch_records()
            except Exception as e:
                print(f"[RecordSource] Error fetching {self.chain} yield data: {e}")

                if self._records is not None:
                    print("[RecordSource] Returning expired cache due to fetch error")
                    return list(self._records)
                return []

            self._records = records
            self._fetched_at = self._clock()
            return list(records)

    def _fetch_records(self) -> List[Record]:
        """GET the pools endpoint and keep the target chain's rows."""
        response = self.client.get(self.pools_url)
        response.raise_for_status()

        rows = response.json()["data"]
        chain_rows = [row for row in rows if row.get("chain") == self.chain]

        records, errors = parse_records(chain_rows)
        for error in errors:
            print(f"[RecordSource] Skipping malformed pool: {error}")

        print(
            f"[RecordSource] Found {len(records)} {self.chain} yield opportunities "
            f"from {len(rows)} total pools"
        )
        return records

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None
