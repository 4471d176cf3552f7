import pytest
from pydantic import ValidationError

from credgrain.core.errors import ConfigError
from credgrain.credrank.personal_attribution import IndexedAttributions, PersonalAttribution

from .conftest import ATTRIBUTIONS


def test_step_function_lookup() -> None:
    idx = IndexedAttributions(ATTRIBUTIONS, ["p1", "p2"])
    assert idx.proportion("p1", "p2", -3) == 0.0
    assert idx.proportion("p1", "p2", -2) == 0.2
    assert idx.proportion("p1", "p2", -1) == 0.1
    assert idx.proportion("p1", "p2", 100) == 0.5
    assert idx.proportion("p2", "p1", 1) == 0.0
    assert idx.proportions_at("p2", 1) == {}
    assert idx.proportions_at("p2", 2) == {"p1": 0.3}
    assert idx.recipients("p1") == ("p2",)
    assert bool(idx)
    assert not IndexedAttributions([], ["p1"])


def test_proportions_may_arrive_unsorted() -> None:
    a = PersonalAttribution.model_validate(
        {
            "from_participant_id": "a",
            "recipients": [
                {
                    "to_participant_id": "b",
                    "proportions": [
                        {"timestamp_ms": 10, "proportion_value": 0.0},
                        {"timestamp_ms": 0, "proportion_value": 0.4},
                    ],
                }
            ],
        }
    )
    idx = IndexedAttributions([a], ["a", "b"])
    assert idx.proportion("a", "b", 5) == 0.4
    assert idx.proportion("a", "b", 10) == 0.0
    assert idx.proportions_at("a", 10) == {}


def test_model_rejects_out_of_range_and_empty() -> None:
    with pytest.raises(ValidationError):
        PersonalAttribution.model_validate(
            {
                "fromParticipantId": "a",
                "recipients": [
                    {"toParticipantId": "b", "proportions": [{"timestampMs": 0, "proportionValue": 1.5}]}
                ],
            }
        )
    with pytest.raises(ValidationError):
        PersonalAttribution.model_validate(
            {"fromParticipantId": "a", "recipients": [{"toParticipantId": "b", "proportions": []}]}
        )


def _one(src: str, dst: str, *points: tuple[int, float]) -> dict:
    return {
        "from_participant_id": src,
        "recipients": [
            {
                "to_participant_id": dst,
                "proportions": [{"timestamp_ms": t, "proportion_value": v} for t, v in points],
            }
        ],
    }


@pytest.mark.parametrize(
    ("attributions", "message"),
    [
        ([_one("zz", "a", (0, 0.1))], "unknown participant"),
        ([_one("a", "zz", (0, 0.1))], "unknown participant"),
        ([_one("a", "a", (0, 0.1))], "themselves"),
        ([_one("a", "b", (0, 0.1), (0, 0.2))], "duplicate timestamps"),
        ([_one("a", "b", (0, 0.1)), _one("a", "b", (1, 0.1))], "duplicate personal attribution"),
    ],
)
def test_invalid_attributions(attributions, message) -> None:
    with pytest.raises(ConfigError, match=message):
        IndexedAttributions(attributions, ["a", "b"])


def test_duplicate_recipient_rejected() -> None:
    raw = _one("a", "b", (0, 0.1))
    raw["recipients"] = raw["recipients"] * 2
    with pytest.raises(ConfigError, match="duplicate recipient"):
        IndexedAttributions([raw], ["a", "b"])


def test_total_may_reach_exactly_one() -> None:
    raw = {
        "from_participant_id": "a",
        "recipients": [
            {"to_participant_id": "b", "proportions": [{"timestamp_ms": 0, "proportion_value": 0.1}]},
            {"to_participant_id": "c", "proportions": [{"timestamp_ms": 0, "proportion_value": 0.2}]},
            {"to_participant_id": "d", "proportions": [{"timestamp_ms": 0, "proportion_value": 0.7}]},
        ],
    }
    idx = IndexedAttributions([raw], ["a", "b", "c", "d"])
    assert sum(idx.proportions_at("a", 0).values()) == pytest.approx(1.0)
