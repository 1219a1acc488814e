from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
import logging

import requests

from order_status_sync.models import TrackingEvent
from .errors import ApiError, from_request_exception
from .normalize import normalize_tracking
from .transport import RequestsTransport


@dataclass
class PalletforceConfig:
    url: str
    access_key: str


class PalletforceClient:
    """Minimal Palletforce tracking client.

    One POST per tracking number with {accessKey, trackingNumber}; the response
    carries `trackingData`, a chronological list of scan events. The POST is a
    read, so the transport may retry it.
    """

    def __init__(
        self,
        cfg: PalletforceConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport(
            allowed_methods=("GET", "POST"))
        self.logger: logging.Logger = logger or logging.getLogger(
            "order_status_sync.api.palletforce"
        )

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        body = {"accessKey": self.cfg.access_key,
                "trackingNumber": tracking_number}
        self.logger.debug("Palletforce POST %s trackingNumber=%s",
                          self.cfg.url, tracking_number)
        try:
            resp = self.transport.post(self.cfg.url, json=body)
            resp.raise_for_status()
        except requests.RequestException as ex:
            err = from_request_exception(ex, self.cfg.url)
            self.logger.warning(
                "Palletforce lookup for %s failed: %s", tracking_number, err)
            raise err from ex

        try:
            payload = resp.json()
        except ValueError as ex:
            raise ApiError(
                f"{self.cfg.url} returned a non-JSON body for {tracking_number}",
                transient=False,
                endpoint=self.cfg.url,
            ) from ex

        events = normalize_tracking(payload, tracking_number=tracking_number)
        self.logger.debug("Palletforce returned %d event(s) for %s",
                          len(events), tracking_number)
        return events
