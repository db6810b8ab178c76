# src/dealscope/adapters/market_client.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from dealscope.adapters.cache import TTLCache
from dealscope.adapters.config import config
from dealscope.adapters.logging_utils import get_logger, log_context
from dealscope.adapters.rate_limiter import TokenBucketRateLimiter
from dealscope.domain.market import ComparableProperty, MarketData

logger = get_logger(__name__)

_RETRYABLE_STATUS = (429, 502, 503, 504)


class MarketDataError(RuntimeError):
    pass


@dataclass
class MarketDataClient:
    """
    Thin HTTP client for the market statistics API.

    Every request takes a token from `rate_limiter` first (including retries),
    and zipcode-level lookups are cached in `cache`. Both are plain instances
    owned by whoever builds the client, so tests can hand in isolated ones.
    """
    base_url: str
    api_key: str
    cache: TTLCache[Any]
    rate_limiter: TokenBucketRateLimiter
    timeout_s: float = 20.0
    max_retries: int = 3
    backoff_base_s: float = 1.0
    market_ttl_s: float = 3600.0
    session: requests.Session = field(default_factory=requests.Session)

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        last_err: Exception | None = None

        for attempt in range(self.max_retries + 1):
            wait = self.backoff_base_s * (2**attempt)
            self.rate_limiter.wait_for_token()
            try:
                resp = self.session.get(
                    url,
                    headers=self._headers(),
                    params=params or {},
                    timeout=self.timeout_s,
                )
            except requests.RequestException as e:
                last_err = e
                logger.warning(
                    "market api network error",
                    extra=log_context(url=url, attempt=attempt, error=repr(e)),
                )
            else:
                if resp.status_code not in _RETRYABLE_STATUS:
                    if resp.status_code >= 400:
                        raise MarketDataError(
                            f"Market API HTTP {resp.status_code}: {resp.text}"
                        )
                    try:
                        return resp.json()
                    except ValueError as e:
                        raise MarketDataError(f"Market API returned invalid JSON for {url}") from e

                last_err = MarketDataError(f"Market API HTTP {resp.status_code}")
                # Respect Retry-After if present
                ra = resp.headers.get("Retry-After")
                if ra:
                    try:
                        wait = max(wait, float(ra))
                    except ValueError:
                        pass
                logger.warning(
                    "market api throttled / unavailable",
                    extra=log_context(url=url, attempt=attempt, status=resp.status_code),
                )

            if attempt < self.max_retries:
                time.sleep(wait)

        raise MarketDataError(f"Market API request failed after retries: {last_err!r}")

    def get_market_data(self, zipcode: str) -> MarketData:
        zipcode = zipcode.strip()
        if not zipcode:
            raise ValueError("zipcode is required for market data")

        cache_key = f"market-data-{zipcode}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        payload = self.get(f"markets/{zipcode}")
        if not isinstance(payload, dict):
            raise MarketDataError(f"Unexpected market payload for {zipcode}: {type(payload).__name__}")

        try:
            market = MarketData.model_validate({**payload, "zipcode": zipcode})
        except ValidationError as e:
            raise MarketDataError(f"Malformed market payload for {zipcode}") from e
        self.cache.set(cache_key, market, self.market_ttl_s)
        logger.info(
            "market data fetched",
            extra=log_context(zipcode=zipcode, comparables=len(market.comparables)),
        )
        return market

    def get_comparables(self, address: str, radius_miles: float = 1.0) -> list[ComparableProperty]:
        cache_key = f"comps-{address.strip().lower()}-{radius_miles:g}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        payload = self.get("comparables", params={"address": address, "radius": radius_miles})
        rows = payload.get("comparables", []) if isinstance(payload, dict) else payload
        try:
            comps = [ComparableProperty.model_validate(r) for r in rows or []]
        except ValidationError as e:
            raise MarketDataError(f"Malformed comparables payload for {address!r}") from e
        self.cache.set(cache_key, comps, self.market_ttl_s)
        return comps

    def close(self) -> None:
        self.cache.close()
        self.session.close()


def make_market_client() -> MarketDataClient:
    api_key = config.MARKET_API_KEY
    if not api_key:
        raise MarketDataError(
            "Missing DEALSCOPE_MARKET_API_KEY. Set it in your environment before calling the market API."
        )

    cache: TTLCache[Any] = TTLCache(
        default_ttl_s=config.CACHE_DEFAULT_TTL_S,
        sweep_interval_s=config.CACHE_SWEEP_INTERVAL_S,
    )
    limiter = TokenBucketRateLimiter(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        per_s=config.RATE_LIMIT_PER_S,
    )
    return MarketDataClient(
        base_url=config.MARKET_API_BASE_URL,
        api_key=api_key,
        cache=cache,
        rate_limiter=limiter,
        timeout_s=config.MARKET_API_TIMEOUT_S,
        max_retries=config.MARKET_API_MAX_RETRIES,
        backoff_base_s=config.MARKET_API_BACKOFF_BASE_S,
        market_ttl_s=config.MARKET_DATA_TTL_S,
    )
