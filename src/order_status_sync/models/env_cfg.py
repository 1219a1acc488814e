from __future__ import annotations
from dataclasses import dataclass

from order_status_sync.models.status import CanonicalStatus

DEFAULT_TRACKING_URL_TEMPLATE = (
    "https://www.palletforce.com/track-a-pallet/?trackingNumber={tracking_number}"
)


@dataclass(frozen=True)
class AppEnv:
    """Typed view of the environment returned by get_app_env()."""
    SHOPIFY_STORE: str = ""
    SHOPIFY_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2024-01"
    PALLETFORCE_URL: str = ""
    PALLETFORCE_ACCESS_KEY: str = ""

    CARRIER_NAME: str = "Palletforce"
    TRACKING_URL_TEMPLATE: str = DEFAULT_TRACKING_URL_TEMPLATE
    NOTIFY_CUSTOMER: bool = False
    FULFILLMENT_TRIGGER_STATUSES: frozenset[CanonicalStatus] = frozenset(
        {CanonicalStatus.IN_TRANSIT, CanonicalStatus.DELIVERED}
    )

    TRACKING_RESOLVER: str = "fulfillment"
    TRACKING_NOTE_ATTRIBUTE: str = "tracking_number"
    TRACKING_METAFIELD: str = "custom.tracking_number"

    TEST_MODE: bool = False
    TEST_ORDER_ID: str = ""

    @property
    def shopify_base_url(self) -> str:
        return f"https://{self.SHOPIFY_STORE}/admin/api/{self.SHOPIFY_API_VERSION}"
