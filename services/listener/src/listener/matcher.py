"""
Voice command matcher for the CareAlert listener.

Scans a finalized transcript against the ordered trigger table.  Every
trigger whose keyword occurs as a substring matches, so one utterance can
yield several commands ("ปวดหนัก" hits both หนัก and ปวด).
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from ca_common.models.trigger import DEFAULT_TRIGGERS, Trigger

logger = structlog.get_logger()


def normalize(text: str) -> str:
    """Case-normalize a transcript for matching."""
    return text.strip().lower()


class CommandMatcher:
    """Ordered substring matcher over a trigger table.

    Args:
        triggers: Trigger table, scanned in order.
    """

    def __init__(self, triggers: Iterable[Trigger] = DEFAULT_TRIGGERS) -> None:
        self._triggers: tuple[Trigger, ...] = tuple(triggers)
        self._needles = tuple(normalize(t.keyword) for t in self._triggers)
        self._by_keyword = {normalize(t.keyword): t for t in self._triggers}
        logger.debug("command_matcher_loaded", triggers=len(self._triggers))

    @property
    def triggers(self) -> tuple[Trigger, ...]:
        return self._triggers

    def match(self, text: str) -> list[Trigger]:
        """Return every trigger contained in *text*, in table order."""
        haystack = normalize(text)
        if not haystack:
            return []
        return [t for t, needle in zip(self._triggers, self._needles) if needle in haystack]

    def lookup(self, keyword: str) -> Trigger | None:
        """Return the trigger registered for exactly *keyword*, if any."""
        return self._by_keyword.get(normalize(keyword))
