# nowcapital/models/retirement/withdrawal.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from nowcapital.models.retirement.profile import _to_float, first_present, is_absent

RRSP = "rrsp"
TFSA = "tfsa"
NON_REGISTERED = "non_registered"

ACCOUNTS = (RRSP, NON_REGISTERED, TFSA)
DEFAULT_FALLBACK_ORDER = (RRSP, NON_REGISTERED, TFSA)

# form key -> account id, in emission order
_WEIGHT_KEYS = (("rrsp", RRSP), ("nonRegistered", NON_REGISTERED), ("tfsa", TFSA))
_DEFAULT_WEIGHTS = {RRSP: 100.0, NON_REGISTERED: 0.0, TFSA: 0.0}

_ALIASES = {
    "rrsp": RRSP, "rrif": RRSP,
    "tfsa": TFSA,
    "non_registered": NON_REGISTERED, "nonregistered": NON_REGISTERED,
    "non-registered": NON_REGISTERED, "nonreg": NON_REGISTERED,
}


@dataclass(frozen=True)
class WithdrawalPolicy:
    weights: Tuple[Tuple[str, float], ...] = ()
    fallback_order: Tuple[str, ...] = DEFAULT_FALLBACK_ORDER

    @property
    def directives(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = [
            {"account": account, "weight_pct": pct} for account, pct in self.weights
        ]
        out.append({"type": "fallback", "order": list(self.fallback_order)})
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {"weights": self.directives}


def _account_id(v) -> Optional[str]:
    if is_absent(v):
        return None
    return _ALIASES.get(str(v).strip().lower())


def resolve_fallback_order(order: Optional[Mapping[str, Any]]) -> Tuple[str, ...]:
    """
    Turn a partial {first, second, third} pick into a full permutation.
    Unknown or repeated picks are dropped; gaps are filled in default order.
    """
    if not isinstance(order, Mapping):
        order = {}
    picks: List[str] = []
    for slot in ("first", "second", "third"):
        account = _account_id(order.get(slot))
        if account and account not in picks:
            picks.append(account)
    picks.extend(a for a in DEFAULT_FALLBACK_ORDER if a not in picks)
    return tuple(picks)


def build_withdrawal_policy(
    order: Optional[Mapping[str, Any]] = None,
    weights: Optional[Mapping[str, Any]] = None,
) -> WithdrawalPolicy:
    fallback = resolve_fallback_order(order)

    w = weights if isinstance(weights, Mapping) else {}
    if not any(not is_absent(w.get(key)) for key, _ in _WEIGHT_KEYS):
        return WithdrawalPolicy(weights=(), fallback_order=fallback)

    directives = tuple(
        (account, _to_float(first_present([(w, key)], _DEFAULT_WEIGHTS[account]), _DEFAULT_WEIGHTS[account]))
        for key, account in _WEIGHT_KEYS
    )
    return WithdrawalPolicy(weights=directives, fallback_order=fallback)


def policy_from_collection(strategy: Optional[Mapping[str, Any]]) -> WithdrawalPolicy:
    """Build from the per-person form collection: {order: {...}, weights: {...}}."""
    strategy = strategy if isinstance(strategy, Mapping) else {}
    return build_withdrawal_policy(order=strategy.get("order"), weights=strategy.get("weights"))
