from __future__ import annotations

from typing import Optional

import requests

# Retrying these later can succeed without anything changing on our side.
TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


class ApiError(RuntimeError):
    """A call to Shopify or the carrier failed.

    `transient` is True for network failures, timeouts, exhausted retries,
    429 and 5xx responses; the order is retried on the next scheduled run.
    """

    def __init__(
        self,
        message: str,
        *,
        transient: bool,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code
        self.endpoint = endpoint

    @property
    def kind(self) -> str:
        return "transient" if self.transient else "client"


def from_request_exception(ex: requests.RequestException, endpoint: str) -> ApiError:
    """Classify a requests exception raised while talking to `endpoint`."""
    resp = getattr(ex, "response", None)
    status = getattr(resp, "status_code", None)
    if isinstance(ex, requests.HTTPError) and status is not None:
        return ApiError(
            f"{endpoint} returned HTTP {status}",
            transient=status in TRANSIENT_STATUS_CODES,
            status_code=status,
            endpoint=endpoint,
        )
    # ConnectionError, Timeout, RetryError (urllib3 retries exhausted), ...
    return ApiError(
        f"{endpoint} request failed: {ex}",
        transient=True,
        status_code=status,
        endpoint=endpoint,
    )
