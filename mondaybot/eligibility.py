"""Decides which Monday items are synced to Discord."""

import logging
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from .config import EligibilityRule
from .errors import UpstreamError

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[Optional[Mapping[str, str]]]]


class EligibilityFilter:
    """OR-combined field rules over an item's current column values.

    A rule matches when the named field (title compared case-insensitively)
    contains any of its terms (case-insensitive substring). With no rules
    configured every item is eligible.

    When the snapshot can't be fetched the filter answers ``fail_open``,
    which defaults to True (the item syncs).
    """

    def __init__(self, rules: Sequence[EligibilityRule], fail_open: bool = True):
        self.rules = list(rules)
        self.fail_open = fail_open

    def should_sync(self, snapshot: Mapping[str, str]) -> bool:
        if not self.rules:
            return True

        fields = {title.strip().lower(): (text or "") for title, text in snapshot.items()}
        for rule in self.rules:
            value = fields.get(rule.field.strip().lower())
            if value is None:
                continue
            value = value.lower()
            if any(term.lower() in value for term in rule.contains):
                return True
        return False

    async def evaluate(self, item_id: str, fetch: SnapshotFetcher) -> bool:
        """Fetch a fresh snapshot and decide. Lookup failures yield ``fail_open``."""
        try:
            snapshot = await fetch()
        except Exception as e:
            logger.warning(
                "Snapshot lookup failed for item %s (%s); eligibility defaults to %s",
                item_id,
                e,
                self.fail_open,
                exc_info=not isinstance(e, UpstreamError),
            )
            return self.fail_open

        if snapshot is None:
            logger.warning(
                "Item %s not found; eligibility defaults to %s", item_id, self.fail_open
            )
            return self.fail_open

        eligible = self.should_sync(snapshot)
        logger.debug("Item %s eligible=%s", item_id, eligible)
        return eligible
