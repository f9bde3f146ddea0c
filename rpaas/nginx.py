"""HTTP client for the management port of a proxy replica."""

import logging

import requests

from .errors import RpaasError

logger = logging.getLogger(__name__)

DEFAULT_MANAGE_PORT = 8800
DEFAULT_TIMEOUT = 10
# Without preserve_path: two protocols, each purged for two encodings
MAX_REQUESTS_PER_PURGE = 4


class NginxError(RpaasError):
    """A replica rejected or failed a management request."""


class NginxCacheManager:
    """Purges cached content on one replica at a time."""

    def __init__(self, port: int = DEFAULT_MANAGE_PORT, timeout: float = DEFAULT_TIMEOUT):
        self.port = port
        self.timeout = timeout

    def purge_cache(self, host: str, path: str, preserve_path: bool = False) -> None:
        """Purge `path` from the cache of the replica at `host`.

        With preserve_path the key is the path as given; otherwise the entries
        cached for both http and https are purged.

        Raises:
            NginxError: If the replica answers with anything but 200 or 404
        """
        if preserve_path:
            self._purge(host, f"/purge/{path.lstrip('/')}")
            return
        for protocol in ("http", "https"):
            self._purge(host, f"/purge/{protocol}/{path.lstrip('/')}")

    def _purge(self, host: str, uri: str) -> None:
        url = f"http://{host}:{self.port}{uri}"
        # Cached entries differ by encoding, purge both
        for encoding in ("gzip", "identity"):
            try:
                resp = requests.get(
                    url, headers={"Accept-Encoding": encoding}, timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise NginxError(f"failed to purge {url}: {e}")
            if resp.status_code not in (200, 404):
                raise NginxError(
                    f"unexpected status code {resp.status_code} purging {url}: {resp.text}"
                )
            logger.debug(f"Purged {url} ({encoding}): {resp.status_code}")
