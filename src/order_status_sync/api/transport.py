from __future__ import annotations

from typing import Any, Dict, Iterable, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import TRANSIENT_STATUS_CODES

# POST is left out: creating a fulfillment is not safe to repeat blindly.
IDEMPOTENT_METHODS: tuple[str, ...] = ("GET", "PUT")


class RequestsTransport:
    """Requests session wrapper with retry/backoff.

    Retries on typical transient errors and on specified status codes, but only
    for `allowed_methods`. Connection failures before a request is sent are
    retried for every method.
    """

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_factor: float = 0.3,
        *,
        allowed_methods: Iterable[str] = IDEMPOTENT_METHODS,
    ) -> None:
        self.session = requests.Session()
        self.timeout = timeout

        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=tuple(sorted(TRANSIENT_STATUS_CODES)),
            allowed_methods=tuple(allowed_methods),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        # mount both http and https
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, data: Any = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        return self.session.post(url, headers=headers, data=data, json=json, params=params, timeout=self.timeout)

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        return self.session.get(url, headers=headers, params=params, timeout=self.timeout)

    def put(self, url: str, *, headers: Optional[Dict[str, str]] = None, json: Any = None):
        return self.session.put(url, headers=headers, json=json, timeout=self.timeout)
