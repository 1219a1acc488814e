# src/order_status_sync/rules/tags.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from order_status_sync.models import STATUS_TAGS, CanonicalStatus

# Shopify stores tags as one string joined by comma-space.
TAG_SEPARATOR = ", "


@dataclass(frozen=True)
class TagSet:
    """
    Structured view of an order's tag field.

    `others` keeps non-status tags in first-seen order; `statuses` holds every
    reserved status tag found (normally zero or one).
    """
    others: tuple[str, ...] = ()
    statuses: tuple[CanonicalStatus, ...] = ()

    @property
    def status(self) -> Optional[CanonicalStatus]:
        # several status tags can only come from manual edits; report the most advanced
        return max(self.statuses) if self.statuses else None

    def __iter__(self):
        yield from self.others
        for s in self.statuses:
            yield s.tag


def _dedupe(tags: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for t in tags:
        if t not in seen:
            seen.add(t)
            out.append(t)
    return out


def decode(raw: Optional[str]) -> TagSet:
    parts = _dedupe(p.strip() for p in (raw or "").split(","))
    others: list[str] = []
    statuses: list[CanonicalStatus] = []
    for p in parts:
        if not p:
            continue
        if p in STATUS_TAGS:
            statuses.append(CanonicalStatus.from_tag(p))
        else:
            others.append(p)
    return TagSet(others=tuple(others), statuses=tuple(statuses))


def encode(tag_set: TagSet) -> str:
    """Non-status tags keep their relative order; the status tag goes last."""
    return TAG_SEPARATOR.join(tag_set)


def apply_status(tag_set: TagSet, status: CanonicalStatus) -> TagSet:
    return TagSet(others=tag_set.others, statuses=(CanonicalStatus(status),))


def current_status(raw_or_set: "str | TagSet | None") -> Optional[CanonicalStatus]:
    if isinstance(raw_or_set, TagSet):
        return raw_or_set.status
    return decode(raw_or_set).status
