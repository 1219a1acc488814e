# src/order_status_sync/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values, find_dotenv, load_dotenv

from order_status_sync.models import AppEnv, CanonicalStatus, parse_status
from order_status_sync.models.env_cfg import DEFAULT_TRACKING_URL_TEMPLATE
from order_status_sync.tracking.resolvers import RESOLVER_NAMES


# --- Public contract ---------------------------------------------------------

class EnvError(RuntimeError):
    """Missing or malformed configuration; fatal before any order is touched."""


SHOPIFY_KEYS: Tuple[str, ...] = (
    "SHOPIFY_STORE",
    "SHOPIFY_TOKEN",
)

CARRIER_KEYS: Tuple[str, ...] = (
    "PALLETFORCE_URL",
    "PALLETFORCE_ACCESS_KEY",
)

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off", ""}


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load variables from the nearest `.env` file (searching upward from `start` or CWD).
    Does NOT override existing env vars unless `override=True`.
    Returns the resolved Path to the .env file if found; otherwise Path().
    """
    start_path = Path.cwd() if start is None else Path(start)

    dotenv_path = Path()
    for p in (start_path, *start_path.parents):
        candidate = p / ".env"
        if candidate.is_file():
            dotenv_path = candidate
            break

    if dotenv_path == Path() and start is None:
        found = find_dotenv(filename=".env", usecwd=True)
        dotenv_path = Path(found) if found else Path()

    if not dotenv_path.is_file():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def parse_bool(name: str, raw: Optional[str], default: bool = False) -> bool:
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise EnvError(f"{name} must be a boolean (true/false), got {raw!r}")


def parse_statuses(name: str, raw: Optional[str]) -> frozenset[CanonicalStatus]:
    out: set[CanonicalStatus] = set()
    for part in (raw or "").split(","):
        if not part.strip():
            continue
        try:
            out.add(parse_status(part))
        except ValueError:
            raise EnvError(
                f"{name}: unknown status {part.strip()!r} "
                f"(expected one of {', '.join(s.value for s in CanonicalStatus)})"
            ) from None
    return frozenset(out)


# --- Main loader APIs --------------------------------------------------------

def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load env vars from a .env file into the process environment and return a dict
    of key/value pairs found in that file.

    - If `dotenv_path` is provided, load exactly that file.
    - Otherwise, auto-discover the nearest .env via `load_project_dotenv`.
    - If `strict=True` and `required_keys` are provided, ensure they are present
      in `os.environ` after loading; otherwise raise EnvError.
    - `override` controls whether .env values replace existing process env values.
    """
    path = Path(dotenv_path) if dotenv_path else load_project_dotenv(override=override)

    loaded: Dict[str, str] = {}
    if path != Path() and path.is_file():
        if dotenv_path:
            load_dotenv(dotenv_path=path, override=override)
        loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise EnvError(
                f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def _validate_store(store: str) -> str:
    s = store.strip().rstrip("/")
    if "://" in s or "/" in s or " " in s:
        raise EnvError(
            f"SHOPIFY_STORE must be a bare host such as 'my-shop.myshopify.com', got {store!r}")
    return s


def get_app_env(
    dotenv_path: Path | str | None = ".env",
    *,
    strict: bool = True,
    require_carrier: bool = True,
) -> AppEnv:
    """
    Load configuration and return a typed AppEnv.

    - `dotenv_path` may point to a specific .env file, or be None to read the
      process environment only (useful for tests).
    - Existing process variables win over the file (CI/host settings first).
    - `strict=True` requires the Shopify credentials, and the carrier
      credentials unless `require_carrier=False` (replay or simulated runs).
    - Malformed values always raise EnvError.
    """
    required = SHOPIFY_KEYS + (CARRIER_KEYS if require_carrier else ())
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        required_keys=required,
        strict=strict,
    )

    template = os.getenv("TRACKING_URL_TEMPLATE") or DEFAULT_TRACKING_URL_TEMPLATE
    if "{tracking_number}" not in template:
        raise EnvError("TRACKING_URL_TEMPLATE must contain '{tracking_number}'")

    resolver = (os.getenv("TRACKING_RESOLVER") or "fulfillment").strip().lower()
    if resolver not in RESOLVER_NAMES:
        raise EnvError(
            f"TRACKING_RESOLVER must be one of {', '.join(RESOLVER_NAMES)}, got {resolver!r}")

    raw_triggers = os.getenv("FULFILLMENT_TRIGGER_STATUSES")
    triggers = (
        parse_statuses("FULFILLMENT_TRIGGER_STATUSES", raw_triggers)
        if raw_triggers is not None
        else AppEnv.FULFILLMENT_TRIGGER_STATUSES
    )

    test_mode = parse_bool("TEST_MODE", os.getenv("TEST_MODE"))
    test_order_id = (os.getenv("TEST_ORDER_ID") or "").strip()
    if test_mode and not test_order_id:
        raise EnvError("TEST_MODE=true requires TEST_ORDER_ID")

    return AppEnv(
        SHOPIFY_STORE=_validate_store(os.getenv("SHOPIFY_STORE", "")),
        SHOPIFY_TOKEN=os.getenv("SHOPIFY_TOKEN", ""),
        SHOPIFY_API_VERSION=os.getenv("SHOPIFY_API_VERSION") or AppEnv.SHOPIFY_API_VERSION,
        PALLETFORCE_URL=os.getenv("PALLETFORCE_URL", ""),
        PALLETFORCE_ACCESS_KEY=os.getenv("PALLETFORCE_ACCESS_KEY", ""),
        CARRIER_NAME=os.getenv("CARRIER_NAME") or AppEnv.CARRIER_NAME,
        TRACKING_URL_TEMPLATE=template,
        NOTIFY_CUSTOMER=parse_bool("NOTIFY_CUSTOMER", os.getenv("NOTIFY_CUSTOMER")),
        FULFILLMENT_TRIGGER_STATUSES=triggers,
        TRACKING_RESOLVER=resolver,
        TRACKING_NOTE_ATTRIBUTE=os.getenv("TRACKING_NOTE_ATTRIBUTE") or AppEnv.TRACKING_NOTE_ATTRIBUTE,
        TRACKING_METAFIELD=os.getenv("TRACKING_METAFIELD") or AppEnv.TRACKING_METAFIELD,
        TEST_MODE=test_mode,
        TEST_ORDER_ID=test_order_id,
    )


__all__ = [
    "EnvError",
    "SHOPIFY_KEYS",
    "CARRIER_KEYS",
    "load_project_dotenv",
    "load_env",
    "parse_bool",
    "parse_statuses",
    "get_app_env",
]
