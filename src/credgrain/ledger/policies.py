"""
Grain allocation policies as a closed tagged union.

Each policy is a frozen pydantic model carrying a ``policy_type`` tag; ``AllocationPolicy``
is the discriminated union over the four variants, so a mapping parses into exactly one
concrete model and consumers can match exhaustively on the tag.

| policy_type | Extra fields              | Weight per identity
|-------------|---------------------------|----------------------------------------------------
| immediate   | num_intervals_lookback    | cred summed over the last k intervals
| recent      | discount                  | Σ cred[i] · (1 − discount)^(n−1−i)
| balanced    | -                         | shortfall vs. lifetime cred share of budget + paid
| special     | memo, recipient           | whole budget to the recipient

Notes:
    - ``budget`` is a non-negative integer amount of raw grain units; decimal integer
      strings are accepted and converted.
    - ``parse_policy`` also accepts camelCase keys and upper-case tags (``"IMMEDIATE"``)
      used by existing policy configs.
    - Weight functions return ``Fraction`` weights so ``split_budget`` divides exactly.
      RECENT discounting itself runs in float.

Examples:
    >>> from credgrain.ledger.policies import parse_policy, immediate_weights
    >>> p = parse_policy({"policyType": "IMMEDIATE", "budget": "10", "numIntervalsLookback": 1})
    >>> p.policy_type, p.budget
    ('immediate', 10)
    >>> [int(w) for w in immediate_weights(p, [[10, 2], [0, 3]])]
    [2, 3]
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from fractions import Fraction
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from credgrain.core.errors import InputError
from credgrain.core.grammar import PolicyType, policy_type_from_value

from .grain import from_string

__all__ = [
    "ImmediatePolicy",
    "RecentPolicy",
    "BalancedPolicy",
    "SpecialPolicy",
    "AllocationPolicy",
    "parse_policy",
    "immediate_weights",
    "recent_weights",
    "balanced_weights",
]

_MODEL_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class _PolicyBase(BaseModel):
    model_config = _MODEL_CONFIG

    budget: int = Field(..., ge=0)

    @field_validator("budget", mode="before")
    @classmethod
    def _budget_from_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            return from_string(v)
        return v

    @property
    def kind(self) -> PolicyType:
        return PolicyType(self.policy_type)  # type: ignore[attr-defined]


class ImmediatePolicy(_PolicyBase):
    """
    Split the budget by cred earned in the most recent intervals.

    Attributes:
        budget (int): Raw grain to distribute.
        num_intervals_lookback (int): Number of trailing intervals counted, >= 1.
    """

    policy_type: Literal["immediate"] = "immediate"
    num_intervals_lookback: int = Field(..., ge=1)


class RecentPolicy(_PolicyBase):
    """
    Split the budget by exponentially discounted cred.

    Attributes:
        budget (int): Raw grain to distribute.
        discount (float): Per-interval decay in [0, 1]; 1 keeps only the latest interval,
            0 weighs all intervals equally.
    """

    policy_type: Literal["recent"] = "recent"
    discount: float = Field(..., ge=0.0, le=1.0)


class BalancedPolicy(_PolicyBase):
    """Pay each identity the shortfall between its lifetime cred share and what it was paid."""

    policy_type: Literal["balanced"] = "balanced"


class SpecialPolicy(_PolicyBase):
    """
    Pay the whole budget to one identity.

    Attributes:
        budget (int): Raw grain to distribute.
        memo (str): Reason for the payment.
        recipient (str): Identity id receiving the budget.
    """

    policy_type: Literal["special"] = "special"
    memo: str
    recipient: str


AllocationPolicy = Annotated[
    ImmediatePolicy | RecentPolicy | BalancedPolicy | SpecialPolicy,
    Field(discriminator="policy_type"),
]

_POLICY_ADAPTER: TypeAdapter[Any] = TypeAdapter(AllocationPolicy)


def parse_policy(data: Mapping[str, Any] | BaseModel) -> AllocationPolicy:
    """
    Parse a policy mapping into its concrete model.

    Args:
        data: Mapping with a ``policy_type``/``policyType`` tag, or an existing policy.

    Returns:
        AllocationPolicy: ImmediatePolicy, RecentPolicy, BalancedPolicy or SpecialPolicy.

    Raises:
        InputError: If the tag is missing or unknown, or the fields do not validate.
    """
    if isinstance(data, ImmediatePolicy | RecentPolicy | BalancedPolicy | SpecialPolicy):
        return data
    raw = dict(data)
    tag = raw.pop("policyType", None)
    tag = raw.pop("policy_type", tag)
    if tag is None:
        raise InputError("policy mapping has no policy_type")
    try:
        raw["policyType"] = policy_type_from_value(str(tag)).value
        return _POLICY_ADAPTER.validate_python(raw)
    except (ValueError, ValidationError) as exc:
        raise InputError(f"invalid allocation policy: {exc}") from exc


def _fractions(cred: Sequence[float]) -> list[Fraction]:
    return [Fraction(c) for c in cred]


def immediate_weights(
    policy: ImmediatePolicy, creds: Sequence[Sequence[float]]
) -> list[Fraction]:
    """Cred over the last ``num_intervals_lookback`` intervals, per identity."""
    k = policy.num_intervals_lookback
    return [sum(_fractions(cred[-k:]), Fraction(0)) for cred in creds]


def recent_weights(policy: RecentPolicy, creds: Sequence[Sequence[float]]) -> list[Fraction]:
    """
    Σ cred[i] · (1 − discount)^(n−1−i), per identity.

    The discounted sum is accumulated in float (Horner form, oldest interval first);
    only the final weight is converted to ``Fraction``.
    """
    keep = 1.0 - policy.discount
    out: list[Fraction] = []
    for cred in creds:
        acc = 0.0
        for c in cred:
            acc = acc * keep + c
        out.append(Fraction(acc))
    return out


def balanced_weights(
    policy: BalancedPolicy, creds: Sequence[Sequence[float]], paid: Sequence[int]
) -> list[Fraction]:
    """
    Shortfall per identity: ``max(0, share · (budget + total_paid) − paid)``.

    ``share`` is the identity's lifetime cred over everyone's lifetime cred. When the
    budget is positive the shortfalls sum to at least the budget, so splitting the budget
    proportionally to them always conserves it.
    """
    lifetime = [sum(_fractions(cred), Fraction(0)) for cred in creds]
    total_cred = sum(lifetime, Fraction(0))
    if total_cred == 0:
        return [Fraction(0)] * len(creds)
    pool = policy.budget + sum(paid)
    return [max(Fraction(0), c / total_cred * pool - p) for c, p in zip(lifetime, paid)]
