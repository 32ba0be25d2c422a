import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .config import get_settings

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Dict[str, Any]]


class JWKSFetchError(Exception):
    """Raised when the signing key set cannot be retrieved"""


def http_jwks_fetcher(url: str, timeout: float) -> Fetcher:
    """Fetcher that downloads the key set document over HTTP"""

    def fetch() -> Dict[str, Any]:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise JWKSFetchError(f"Could not fetch JWKS from {url}: {str(e)}") from e

    return fetch


class JWKSCache:
    """Signing-key cache keyed by ``kid`` (TTL + rate-limited forced refresh)"""

    def __init__(self, fetcher: Optional[Fetcher] = None, ttl_seconds: Optional[int] = None,
                 min_refresh_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        settings = get_settings()
        self.fetcher = fetcher or http_jwks_fetcher(settings.JWKS_URL, settings.JWKS_FETCH_TIMEOUT)
        self.ttl_seconds = settings.JWKS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.min_refresh_seconds = (
            settings.JWKS_MIN_REFRESH_SECONDS if min_refresh_seconds is None else min_refresh_seconds
        )
        self.clock = clock
        self.keys: Dict[str, Dict[str, Any]] = {}
        self.fetched_at: Optional[float] = None
        self._lock = threading.Lock()

    def _is_fresh(self) -> bool:
        return self.fetched_at is not None and self.clock() - self.fetched_at < self.ttl_seconds

    def _can_force_refresh(self) -> bool:
        return self.fetched_at is None or self.clock() - self.fetched_at >= self.min_refresh_seconds

    def refresh(self) -> None:
        document = self.fetcher()
        jwks: List[Dict[str, Any]] = document.get("keys", []) if isinstance(document, dict) else []
        self.keys = {jwk["kid"]: jwk for jwk in jwks if "kid" in jwk}
        self.fetched_at = self.clock()
        logger.info(f"Loaded {len(self.keys)} signing keys")

    def get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        """Return the JWK for ``kid``; an unknown kid triggers at most one refresh"""
        with self._lock:
            if not self._is_fresh():
                self.refresh()
            elif kid not in self.keys and self._can_force_refresh():
                logger.info(f"Unknown key id {kid}, refreshing key set")
                self.refresh()
            return self.keys.get(kid)
