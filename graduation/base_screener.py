"""
BASE SCREENER - Abstract base class for HTTP data sources

Shared plumbing for DexScreener, Helius and RugCheck:
- lazily opened aiohttp session
- minimum interval between requests
- request accounting
- every transport problem raised as UpstreamError
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

import aiohttp

from .errors import UpstreamError

logger = logging.getLogger(__name__)


class BaseScreener(ABC):
    """
    Abstract base class for data-source adapters.

    Subclasses call _request_json() and are responsible for catching
    UpstreamError at their public boundary.
    """

    source_name = "UPSTREAM"
    user_agent = "GraduationWatcher/1.0"

    def __init__(self, config: Dict = None):
        """
        Args:
            config: Adapter configuration dict (timeouts, rate limits, TTLs)
        """
        self.config = config or {}
        self.request_timeout = self.config.get('request_timeout_seconds', 10)
        self.min_request_interval = self.config.get('min_request_interval_seconds', 0.0)

        self.session: Optional[aiohttp.ClientSession] = None
        self.last_request_time: Optional[datetime] = None
        self.request_count = 0
        self.error_count = 0

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when all credentials this source needs are present."""

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={
                    'Accept': 'application/json',
                    'User-Agent': self.user_agent,
                },
            )

    async def close(self):
        """Close aiohttp session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _request_json(self, method: str, url: str, params: Dict = None,
                            json: Dict = None):
        """
        Perform one HTTP request and return the decoded JSON body.

        Raises:
            UpstreamError: non-2xx status, timeout, transport or decode failure
        """
        await self._ensure_session()

        if self.last_request_time and self.min_request_interval:
            elapsed = (datetime.now() - self.last_request_time).total_seconds()
            if elapsed < self.min_request_interval:
                await asyncio.sleep(self.min_request_interval - elapsed)

        try:
            async with self.session.request(method, url, params=params, json=json) as response:
                self._update_rate_limit()

                if response.status == 429:
                    self.error_count += 1
                    raise UpstreamError(self.source_name, "rate limited", status=429)
                if response.status < 200 or response.status >= 300:
                    self.error_count += 1
                    raise UpstreamError(self.source_name, url, status=response.status)

                try:
                    return await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as e:
                    self.error_count += 1
                    raise UpstreamError(self.source_name, f"malformed response from {url}: {e}")

        except asyncio.TimeoutError:
            self.error_count += 1
            raise UpstreamError(self.source_name, f"timeout: {url}")
        except aiohttp.ClientError as e:
            self.error_count += 1
            raise UpstreamError(self.source_name, f"request error: {e}")

    def _update_rate_limit(self):
        self.last_request_time = datetime.now()
        self.request_count += 1

    def get_stats(self) -> Dict:
        return {
            'request_count': self.request_count,
            'error_count': self.error_count,
            'last_request': self.last_request_time.isoformat() if self.last_request_time else None,
            'source': self.__class__.__name__,
            'configured': self.is_configured(),
        }
