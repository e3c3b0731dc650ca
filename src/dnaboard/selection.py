"""Due-item selection and fresh-item sampling for board building.

Both selectors treat their upstream store as optional: an unavailable store
yields an empty result so a board can always be built from whatever remains.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .models import DueRecord, Item, ScopeFilter
from .pool import QuestionPoolStore

if TYPE_CHECKING:
    from .generators import RandomSource
    from .progress import SchedulingStore

logger = logging.getLogger(__name__)


def select_due(store: SchedulingStore, group_id: str, capacity: int | None = None) -> list[DueRecord]:
    """Return due review records for a group, at most `capacity` of them."""
    if capacity is not None and capacity <= 0:
        return []
    try:
        records = list(store.due_records(group_id))
    except Exception:
        logger.warning(
            "Scheduling store unavailable for group %r; continuing without review items", group_id, exc_info=True
        )
        return []
    if capacity is not None:
        records = records[:capacity]
    logger.debug("Selected %d due records for group %r", len(records), group_id)
    return records


def sample_pool(
    pool: QuestionPoolStore,
    remaining: int,
    scope: ScopeFilter,
    rng: RandomSource,
    exclude: Iterable[str] = (),
) -> list[Item]:
    """Draw up to `remaining` distinct items uniformly at random from the scoped pool."""
    if remaining <= 0:
        return []
    try:
        candidates = pool.query_items(scope)
    except Exception:
        logger.warning("Question pool unavailable for scope %r", scope, exc_info=True)
        return []

    excluded = set(exclude)
    unique: dict[str, Item] = {}
    for item in candidates:
        if item.id in excluded or item.id in unique:
            continue
        unique[item.id] = item
    eligible = list(unique.values())

    count = min(remaining, len(eligible))
    if count < remaining:
        logger.info("Pool shortfall: wanted %d items, %d eligible", remaining, len(eligible))
    if count == 0:
        return []
    return rng.sample(eligible, count)
