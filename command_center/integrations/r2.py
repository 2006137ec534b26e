"""
Cloudflare R2 bucket access through the Cloudflare REST API.

Listing follows the cursor until the bucket is exhausted, bounded by a
page cap. Object reads are streamed so audio can be proxied with Range
support without buffering the whole file.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from ..errors import ConfigError, UpstreamError

logger = logging.getLogger(__name__)

API_BASE = "https://api.cloudflare.com/client/v4/accounts"

PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "accept-ranges",
    "etag",
    "last-modified",
    "cache-control",
    "content-range",
)


def safe_filename(key: str) -> str:
    """Last path segment of an object key, safe for a quoted header value."""
    segments = [s for s in key.split("/") if s]
    filename = segments[-1] if segments else "lessoncraft-asset"
    return filename.replace('"', "")


def proxy_headers(upstream: Mapping[str, str], key: str, download: bool) -> Dict[str, str]:
    """Headers for the proxied response."""
    headers = {}
    for name in PASSTHROUGH_HEADERS:
        value = upstream.get(name)
        if value:
            headers[name] = value
    disposition = "attachment" if download else "inline"
    headers["content-disposition"] = f'{disposition}; filename="{safe_filename(key)}"'
    return headers


class R2Client:
    """Minimal R2 client: paginated listing and streamed object GET."""

    def __init__(self, account_id: str, email: str, api_key: str, bucket: str,
                 page_size: int = 1000, max_pages: int = 200, timeout: float = 30.0):
        if not (account_id and email and api_key):
            raise ConfigError("Cloudflare credentials are not configured")
        self.account_id = account_id
        self.email = email
        self.api_key = api_key
        self.bucket = bucket
        self.page_size = page_size
        self.max_pages = max_pages
        self.timeout = timeout

    @property
    def objects_url(self) -> str:
        return f"{API_BASE}/{self.account_id}/r2/buckets/{self.bucket}/objects"

    def _headers(self, range_header: Optional[str] = None) -> Dict[str, str]:
        headers = {"X-Auth-Email": self.email, "X-Auth-Key": self.api_key}
        if range_header:
            headers["Range"] = range_header
        return headers

    def list_objects(self) -> List[Dict[str, Any]]:
        """Every object in the bucket. Raises UpstreamError."""
        objects: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            params = {"per_page": str(self.page_size)}
            if cursor:
                params["cursor"] = cursor
            try:
                r = requests.get(self.objects_url, params=params,
                                 headers=self._headers(), timeout=self.timeout)
            except requests.RequestException as e:
                raise UpstreamError(f"R2 listing failed: {e}")
            if not r.ok:
                raise UpstreamError(f"R2 listing failed with status {r.status_code}",
                                    status=r.status_code, details=r.text)

            try:
                payload = r.json()
            except ValueError:
                raise UpstreamError("R2 listing returned invalid JSON", status=r.status_code)
            if not payload.get("success"):
                messages = [e.get("message") for e in payload.get("errors") or []
                            if isinstance(e, dict) and e.get("message")]
                raise UpstreamError("; ".join(messages) or "Unknown R2 API error")

            objects.extend(payload.get("result") or [])
            info = payload.get("result_info") or {}
            cursor = info.get("cursor") if info.get("is_truncated") else None

            pages += 1
            if not cursor:
                break
            if pages >= self.max_pages:
                raise UpstreamError("R2 pagination safety limit reached")

        logger.debug(f"Listed {len(objects)} R2 objects in {pages} page(s)")
        return objects

    def open_object(self, key: str, range_header: Optional[str] = None) -> requests.Response:
        """Streamed GET of one object. Caller must close the response."""
        url = f"{self.objects_url}/{quote(key, safe='')}"
        try:
            r = requests.get(url, headers=self._headers(range_header),
                             stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to fetch object from R2: {e}")
        if not r.ok:
            details = r.text
            r.close()
            raise UpstreamError("Failed to fetch object from R2",
                                status=r.status_code, details=details)
        return r
