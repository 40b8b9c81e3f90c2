# nowcapital/models/retirement/profile.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

# -------------------------
# Fallback constants
# -------------------------
DEFAULTS = {
    "current_age": 55,
    "retirement_age": 65,
    "death_age": 90,
    "cpp_start_age": 65,
    "oas_start_age": 65,
    "base_cpp_amount": 12000.0,
    "base_oas_amount": 8800.0,
    "rrif_conversion_age": 71,
    "lif_conversion_age": 71,
    "capital_gains_percent": 90.0,   # share of non-reg growth that is capital gains
    "dividend_yield": 2.0,
    "eligible_dividend_percent": 70.0,
    "db_start_age": 65,
    "db_survivor_percent": 60.0,
    "db_index_before_retirement": "none",
    "db_index_after_retirement": "cpi",
    "db_cpp_integration": 0.0,
}

INDEXATION_MODES = {"none", "cpi", "partial"}

Lookup = Tuple[Optional[Mapping[str, Any]], str]


def is_absent(v) -> bool:
    if v is None:
        return True
    if isinstance(v, str) and v.strip() == "":
        return True
    # NaN from tabular sources
    return isinstance(v, float) and v != v


def is_unset(v) -> bool:
    """Absent, or a numeric zero (an untouched form field)."""
    if is_absent(v):
        return True
    if isinstance(v, bool):
        return False
    return _to_float(v, None) == 0


def first_present(lookups: Iterable[Lookup], default=None, zero_is_unset=False):
    """
    Walk (source, key) pairs in order and return the first present value.
    Sources may be None. Falls back to `default` when nothing is set.
    With `zero_is_unset`, a zero is skipped like a blank.
    """
    skip = is_unset if zero_is_unset else is_absent
    for source, key in lookups:
        if not isinstance(source, Mapping):
            continue
        v = source.get(key)
        if not skip(v):
            return v
    return default


def _to_int(v, d=0):
    try:
        return int(float(v))
    except Exception:
        return d


def _to_float(v, d=0.0):
    try:
        return float(str(v).replace(",", "")) if isinstance(v, str) else float(v)
    except Exception:
        return d


def _to_bool(v, d=False):
    if is_absent(v):
        return d
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"1", "true", "yes", "on"}:
            return True
        if s in {"0", "false", "no", "off"}:
            return False
    return d


def default_cost_basis(balance: float, capital_gains_percent: float) -> float:
    return float(balance) * (float(capital_gains_percent) / 100.0)


@dataclass
class DbPension:
    enabled: bool = False
    income: float = 0.0
    start_age: int = DEFAULTS["db_start_age"]
    index_before_retirement: str = DEFAULTS["db_index_before_retirement"]
    index_after_retirement: str = DEFAULTS["db_index_after_retirement"]
    survivor_percent: float = DEFAULTS["db_survivor_percent"]
    cpp_integration: float = DEFAULTS["db_cpp_integration"]
    guarantee_period: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "db_enabled": self.enabled,
            "db_pension_income": self.income,
            "db_start_age": self.start_age,
            "db_index_before_retirement": self.index_before_retirement,
            "db_index_after_retirement": self.index_after_retirement,
            "db_survivor_percent": self.survivor_percent,
            "db_cpp_integration": self.cpp_integration,
            "db_guarantee_period": self.guarantee_period,
        }


@dataclass
class PersonProfile:
    name: str
    current_age: int
    retirement_age: int
    death_age: int
    rrsp: float = 0.0
    tfsa: float = 0.0
    non_registered: float = 0.0
    lira: float = 0.0
    cost_basis: float = 0.0
    rrsp_room: float = 0.0
    tfsa_room: float = 0.0
    cpp_start_age: int = DEFAULTS["cpp_start_age"]
    oas_start_age: int = DEFAULTS["oas_start_age"]
    base_cpp_amount: float = DEFAULTS["base_cpp_amount"]
    base_oas_amount: float = DEFAULTS["base_oas_amount"]
    db_pension: DbPension = field(default_factory=DbPension)
    capital_gains_percent: float = DEFAULTS["capital_gains_percent"]
    dividend_yield: float = DEFAULTS["dividend_yield"]
    eligible_dividend_percent: float = DEFAULTS["eligible_dividend_percent"]
    rrif_conversion_age: int = DEFAULTS["rrif_conversion_age"]
    lif_conversion_age: int = DEFAULTS["lif_conversion_age"]
    meltdown_strategy: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Flat wire shape; the DB pension sub-record is spliced in as db_* keys."""
        out = {
            "name": self.name,
            "current_age": self.current_age,
            "retirement_age": self.retirement_age,
            "death_age": self.death_age,
            "rrsp": self.rrsp,
            "tfsa": self.tfsa,
            "non_registered": self.non_registered,
            "lira": self.lira,
            "cost_basis": self.cost_basis,
            "rrsp_room": self.rrsp_room,
            "tfsa_room": self.tfsa_room,
            "cpp_start_age": self.cpp_start_age,
            "oas_start_age": self.oas_start_age,
            "base_cpp_amount": self.base_cpp_amount,
            "base_oas_amount": self.base_oas_amount,
            "capital_gains_percent": self.capital_gains_percent,
            "dividend_yield": self.dividend_yield,
            "eligible_dividend_percent": self.eligible_dividend_percent,
            "rrif_conversion_age": self.rrif_conversion_age,
            "lif_conversion_age": self.lif_conversion_age,
            "meltdown_strategy": self.meltdown_strategy,
        }
        out.update(self.db_pension.to_dict())
        return out


def _indexation(v, d):
    s = str(v).strip().lower() if not is_absent(v) else ""
    return s if s in INDEXATION_MODES else d


def normalize_db_pension(raw: Optional[Mapping[str, Any]]) -> DbPension:
    if not isinstance(raw, Mapping):
        raw = {}
    return DbPension(
        enabled=_to_bool(raw.get("enabled"), False),
        income=_to_float(first_present([(raw, "income")], 0.0)),
        start_age=_to_int(first_present([(raw, "startAge")], DEFAULTS["db_start_age"]), DEFAULTS["db_start_age"]),
        index_before_retirement=_indexation(raw.get("indexBeforeRetirement"), DEFAULTS["db_index_before_retirement"]),
        index_after_retirement=_indexation(raw.get("indexAfterRetirement"), DEFAULTS["db_index_after_retirement"]),
        survivor_percent=_to_float(
            first_present([(raw, "survivorPercent")], DEFAULTS["db_survivor_percent"]),
            DEFAULTS["db_survivor_percent"],
        ),
        cpp_integration=_to_float(
            first_present([(raw, "cppIntegration")], DEFAULTS["db_cpp_integration"]),
            DEFAULTS["db_cpp_integration"],
        ),
        guarantee_period=_to_bool(raw.get("guaranteePeriod"), False),
    )


def normalize_person(
    fields: Optional[Mapping[str, Any]],
    advanced: Optional[Mapping[str, Any]] = None,
    db_pension: Optional[Mapping[str, Any]] = None,
    global_settings: Optional[Mapping[str, Any]] = None,
    name: Optional[str] = None,
) -> PersonProfile:
    """
    Resolve one person's inputs into a fully populated PersonProfile.

    `fields` holds the row-level values with the person prefix stripped
    (currentAge, rrsp, nonRegAcb, ...). `advanced` is the per-person advanced
    options collection and `global_settings` the shared collection that can
    carry household-wide assumptions (conversion ages, dividend mix, ...).

    Never raises: anything absent or unparseable falls back to DEFAULTS.
    """
    f = fields if isinstance(fields, Mapping) else {}
    adv = advanced if isinstance(advanced, Mapping) else {}
    glob = global_settings if isinstance(global_settings, Mapping) else {}

    def num(lookups, key, caster, zero_is_unset=False):
        d = DEFAULTS[key]
        return caster(first_present(lookups, d, zero_is_unset), d)

    current_age = _to_int(first_present([(f, "currentAge")], DEFAULTS["current_age"]), DEFAULTS["current_age"])
    retirement_age = _to_int(first_present([(f, "retirementAge")], DEFAULTS["retirement_age"]), DEFAULTS["retirement_age"])
    death_age = _to_int(first_present([(f, "deathAge")], DEFAULTS["death_age"]), DEFAULTS["death_age"])

    non_registered = max(0.0, _to_float(first_present([(f, "nonRegistered")], 0.0)))
    capital_gains_percent = num(
        [(adv, "capitalGainsPercent"), (glob, "capitalGainsPercent")], "capital_gains_percent", _to_float
    )

    # ACB: explicit non-zero override wins, otherwise infer from the growth share
    explicit_acb = _to_float(first_present([(f, "nonRegAcb"), (adv, "costBasis")], 0.0))
    if explicit_acb:
        cost_basis = explicit_acb
    else:
        cost_basis = default_cost_basis(non_registered, capital_gains_percent)

    return PersonProfile(
        name=str(first_present([(f, "name")], name or "")),
        current_age=current_age,
        retirement_age=retirement_age,
        death_age=death_age,
        rrsp=max(0.0, _to_float(first_present([(f, "rrsp")], 0.0))),
        tfsa=max(0.0, _to_float(first_present([(f, "tfsa")], 0.0))),
        non_registered=non_registered,
        lira=max(0.0, _to_float(first_present([(f, "lira"), (adv, "lira")], 0.0))),
        cost_basis=cost_basis,
        rrsp_room=_to_float(first_present([(adv, "rrspRoom")], 0.0)),
        tfsa_room=_to_float(first_present([(adv, "tfsaRoom")], 0.0)),
        cpp_start_age=num([(adv, "cppStartAge")], "cpp_start_age", _to_int, zero_is_unset=True),
        oas_start_age=num([(adv, "oasStartAge")], "oas_start_age", _to_int, zero_is_unset=True),
        base_cpp_amount=num([(adv, "baseCppAmount")], "base_cpp_amount", _to_float, zero_is_unset=True),
        base_oas_amount=num([(adv, "baseOasAmount")], "base_oas_amount", _to_float, zero_is_unset=True),
        db_pension=normalize_db_pension(db_pension),
        capital_gains_percent=capital_gains_percent,
        dividend_yield=num([(adv, "dividendYield"), (glob, "dividendYield")], "dividend_yield", _to_float),
        eligible_dividend_percent=num(
            [(adv, "eligibleDividendPercent"), (glob, "eligibleDividendPercent")],
            "eligible_dividend_percent",
            _to_float,
        ),
        rrif_conversion_age=num([(adv, "rrifAge"), (glob, "rrifAge")], "rrif_conversion_age", _to_int, zero_is_unset=True),
        lif_conversion_age=num([(adv, "lifAge"), (glob, "lifAge")], "lif_conversion_age", _to_int, zero_is_unset=True),
        meltdown_strategy=_to_bool(first_present([(adv, "meltdown"), (glob, "meltdown")], False)),
    )


def phantom_person(name: str = "Person 2") -> PersonProfile:
    """
    Stand-in second person for individual scenarios: default ages so the
    engine sees a consistent timeline, no money, OAS baseline only.
    """
    return PersonProfile(
        name=name,
        current_age=DEFAULTS["current_age"],
        retirement_age=DEFAULTS["retirement_age"],
        death_age=DEFAULTS["death_age"],
        base_cpp_amount=0.0,
        base_oas_amount=DEFAULTS["base_oas_amount"],
        cost_basis=0.0,
        db_pension=DbPension(enabled=False),
    )
