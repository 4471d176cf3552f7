"""
Personal attributions: time-scoped redirection of a participant's cred.

A participant may send a fraction of the cred flowing through their own epoch nodes to
another participant, e.g. a mentor crediting an apprentice. Each recipient carries a
step function of proportions over time; the value in effect at time ``t`` is the most
recent proportion whose timestamp is at or before ``t`` (zero before the first one).

Notes:
    - Field names are lower_snake; camelCase aliases (``fromParticipantId``,
      ``proportionValue``...) are accepted so existing attribution configs parse as-is.
    - IndexedAttributions is the only place that validates cross-record rules; the
      pydantic models validate single records.

Examples:
    >>> from credgrain.credrank.personal_attribution import (
    ...     PersonalAttribution, IndexedAttributions,
    ... )
    >>> a = PersonalAttribution.model_validate({
    ...     "fromParticipantId": "p1",
    ...     "recipients": [{"toParticipantId": "p2",
    ...                     "proportions": [{"timestampMs": 0, "proportionValue": 0.5}]}],
    ... })
    >>> idx = IndexedAttributions([a], ["p1", "p2"])
    >>> idx.proportion("p1", "p2", 10)
    0.5
    >>> idx.proportion("p1", "p2", -1)
    0.0
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from credgrain.core.errors import ConfigError

__all__ = [
    "AttributionProportion",
    "AttributionRecipient",
    "PersonalAttribution",
    "PersonalAttributions",
    "IndexedAttributions",
]

# Proportion sums are compared with this slack to absorb float noise in configs
# such as 0.1 + 0.2 + 0.7.
_SUM_TOLERANCE = 1e-12

_MODEL_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class AttributionProportion(BaseModel):
    """
    One breakpoint of an attribution step function.

    Attributes:
        timestamp_ms (int): Time from which the proportion applies.
        proportion_value (float): Fraction of cred redirected, in [0, 1].
    """

    model_config = _MODEL_CONFIG

    timestamp_ms: int
    proportion_value: float = Field(..., ge=0.0, le=1.0)


class AttributionRecipient(BaseModel):
    """
    Recipient of a personal attribution with its proportions over time.

    Attributes:
        to_participant_id (str): Receiving participant.
        proportions (tuple[AttributionProportion, ...]): Non-empty breakpoints, any order.
    """

    model_config = _MODEL_CONFIG

    to_participant_id: str
    proportions: tuple[AttributionProportion, ...] = Field(..., min_length=1)


class PersonalAttribution(BaseModel):
    """
    All attributions sent by one participant.

    Attributes:
        from_participant_id (str): Participant whose cred is partially redirected.
        recipients (tuple[AttributionRecipient, ...]): Recipients and their proportions.
    """

    model_config = _MODEL_CONFIG

    from_participant_id: str
    recipients: tuple[AttributionRecipient, ...] = ()


PersonalAttributions = Sequence[PersonalAttribution]


class IndexedAttributions:
    """
    Validated, query-friendly view over a list of personal attributions.

    Args:
        attributions: Attribution records (models or plain mappings).
        participant_ids: Ids of every participant in the Markov process graph.

    Raises:
        ConfigError: On unknown participants, self-attribution, duplicate recipients,
            duplicate timestamps for one recipient, or an outgoing proportion sum above 1
            at any instant.
    """

    def __init__(
        self,
        attributions: Iterable[PersonalAttribution | Mapping[str, object]],
        participant_ids: Iterable[str],
    ) -> None:
        known = set(participant_ids)
        # from_id -> to_id -> (sorted timestamps, values aligned)
        self._index: dict[str, dict[str, tuple[list[int], list[float]]]] = {}

        for raw in attributions:
            attribution = (
                raw
                if isinstance(raw, PersonalAttribution)
                else PersonalAttribution.model_validate(raw)
            )
            src = attribution.from_participant_id
            if src not in known:
                raise ConfigError(f"personal attribution from unknown participant {src!r}")
            if src in self._index:
                raise ConfigError(f"duplicate personal attribution entry for participant {src!r}")
            by_recipient: dict[str, tuple[list[int], list[float]]] = {}
            for recipient in attribution.recipients:
                dst = recipient.to_participant_id
                if dst not in known:
                    raise ConfigError(f"personal attribution to unknown participant {dst!r}")
                if dst == src:
                    raise ConfigError(f"participant {src!r} cannot attribute cred to themselves")
                if dst in by_recipient:
                    raise ConfigError(f"duplicate recipient {dst!r} in attributions from {src!r}")
                ordered = sorted(recipient.proportions, key=lambda p: p.timestamp_ms)
                stamps = [p.timestamp_ms for p in ordered]
                if len(set(stamps)) != len(stamps):
                    raise ConfigError(
                        f"duplicate timestamps in attribution from {src!r} to {dst!r}"
                    )
                by_recipient[dst] = (stamps, [p.proportion_value for p in ordered])
            self._index[src] = by_recipient
            self._check_totals(src)

    def _check_totals(self, src: str) -> None:
        # The total is a step function that only changes at breakpoints.
        breakpoints = sorted(
            {t for stamps, _ in self._index[src].values() for t in stamps}
        )
        for t in breakpoints:
            total = sum(self.proportions_at(src, t).values())
            if total > 1.0 + _SUM_TOLERANCE:
                raise ConfigError(
                    f"attributions from {src!r} sum to {total:.6g} at timestamp {t}; must not exceed 1"
                )

    def proportion(self, from_id: str, to_id: str, timestamp_ms: int) -> float:
        """Proportion from ``from_id`` to ``to_id`` in effect at ``timestamp_ms``."""
        entry = self._index.get(from_id, {}).get(to_id)
        if entry is None:
            return 0.0
        stamps, values = entry
        pos = bisect.bisect_right(stamps, timestamp_ms) - 1
        return values[pos] if pos >= 0 else 0.0

    def proportions_at(self, from_id: str, timestamp_ms: int) -> dict[str, float]:
        """Non-zero proportions from ``from_id`` keyed by recipient, in recipient order."""
        out: dict[str, float] = {}
        for to_id in self._index.get(from_id, {}):
            q = self.proportion(from_id, to_id, timestamp_ms)
            if q > 0:
                out[to_id] = q
        return out

    def recipients(self, from_id: str) -> tuple[str, ...]:
        return tuple(self._index.get(from_id, {}))

    def __bool__(self) -> bool:
        return bool(self._index)
