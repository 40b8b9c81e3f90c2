# nowcapital/models/retirement/scenario.py
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from nowcapital.models.retirement.profile import (
    PersonProfile,
    _to_bool,
    _to_float,
    first_present,
    normalize_person,
    phantom_person,
)
from nowcapital.models.retirement.withdrawal import WithdrawalPolicy, policy_from_collection

INDIVIDUAL = "individual"
COUPLE = "couple"

GLOBAL_DEFAULTS = {
    "expected_returns": 6.0,
    "cpi": 3.0,
    "province": "ON",
    "income_split": False,
    "allocation": 50.0,
    "survivor_expense_percent": 100.0,
    "base_tfsa_amount": 7000.0,
    "calculate_gis": False,
}

# Fixed statistical inputs for the simulation endpoint. Not user-configurable.
MONTE_CARLO_PARAMETERS = {
    "return_std_dev": 0.09,
    "inflation_std_dev": 0.01,
    "return_inflation_correlation": 0.0,
    "num_trials": 1000,
    "distribution": "lognormal",
}


class Operation(str, Enum):
    CALCULATE_MAX_SPEND = "calculateMaxSpend"
    CALCULATE_MAX_SPEND_WITH_YEARLY_DATA = "calculateMaxSpendWithYearlyData"
    CALCULATE_WITH_TARGET_SPEND = "calculateWithTargetSpend"
    MONTE_CARLO = "monteCarlo"
    GET_SIMULATION_STATUS = "getSimulationStatus"
    GET_SIMULATION_RESULT = "getSimulationResult"

    @property
    def builds_payload(self) -> bool:
        return self not in (Operation.GET_SIMULATION_STATUS, Operation.GET_SIMULATION_RESULT)

    @property
    def needs_target_spend(self) -> bool:
        return self in (Operation.CALCULATE_WITH_TARGET_SPEND, Operation.MONTE_CARLO)


# POST endpoints that take a CalculationRequest
ENDPOINTS = {
    Operation.CALCULATE_MAX_SPEND: "/calculate-max-spend",
    Operation.CALCULATE_MAX_SPEND_WITH_YEARLY_DATA: "/calculate-max-spend-with-yearly-data",
    Operation.CALCULATE_WITH_TARGET_SPEND: "/calculate-with-target-spend",
    Operation.MONTE_CARLO: "/monte-carlo",
}


@dataclass(frozen=True)
class GlobalAssumptions:
    expected_returns: float = GLOBAL_DEFAULTS["expected_returns"]
    cpi: float = GLOBAL_DEFAULTS["cpi"]
    province: str = GLOBAL_DEFAULTS["province"]
    individual: bool = True
    income_split: bool = GLOBAL_DEFAULTS["income_split"]
    allocation: float = GLOBAL_DEFAULTS["allocation"]
    survivor_expense_percent: float = GLOBAL_DEFAULTS["survivor_expense_percent"]
    base_tfsa_amount: float = GLOBAL_DEFAULTS["base_tfsa_amount"]
    calculate_gis: bool = GLOBAL_DEFAULTS["calculate_gis"]
    simulation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "expected_returns": self.expected_returns,
            "cpi": self.cpi,
            "province": self.province,
            "individual": self.individual,
            "income_split": self.income_split,
            "allocation": self.allocation,
            "survivor_expense_percent": self.survivor_expense_percent,
            "base_tfsa_amount": self.base_tfsa_amount,
            "calculate_gis": self.calculate_gis,
        }
        if self.simulation:
            out.update(self.simulation)
        return out


@dataclass(frozen=True)
class CalculationRequest:
    person1: PersonProfile
    person2: PersonProfile
    inputs: GlobalAssumptions
    strategy_person1: WithdrawalPolicy
    strategy_person2: WithdrawalPolicy
    target_monthly_spend: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "person1": self.person1.to_dict(),
            "person2": self.person2.to_dict(),
            "inputs": self.inputs.to_dict(),
            "withdrawal_strategy": {
                "person1": self.strategy_person1.to_dict(),
                "person2": self.strategy_person2.to_dict(),
            },
        }
        if self.target_monthly_spend is not None:
            payload["target_monthly_spend"] = self.target_monthly_spend
        return payload


# -------------------------
# Assembler
# -------------------------
def person_fields(row: Mapping[str, Any], prefix: str) -> Dict[str, Any]:
    """
    Pull the `p1...`/`p2...` scalar fields off a row and strip the prefix:
    p1CurrentAge -> currentAge, p2NonRegAcb -> nonRegAcb.
    """
    out: Dict[str, Any] = {}
    for k, v in (row or {}).items():
        if k.startswith(prefix) and len(k) > len(prefix) and k[len(prefix)].isupper():
            rest = k[len(prefix):]
            out[rest[0].lower() + rest[1:]] = v
    return out


def scenario_mode(row: Mapping[str, Any]) -> str:
    mode = str(first_present([(row, "scenarioType")], INDIVIDUAL)).strip().lower()
    return COUPLE if mode == COUPLE else INDIVIDUAL


def build_global_assumptions(row: Mapping[str, Any], individual: bool) -> GlobalAssumptions:
    g = row.get("globalSettings") or {}
    d = GLOBAL_DEFAULTS
    return GlobalAssumptions(
        expected_returns=_to_float(first_present([(row, "expectedReturns")], d["expected_returns"]), d["expected_returns"]),
        cpi=_to_float(first_present([(row, "cpi")], d["cpi"]), d["cpi"]),
        province=str(first_present([(row, "province")], d["province"])).strip().upper(),
        individual=individual,
        income_split=_to_bool(first_present([(g, "incomeSplit")], d["income_split"])),
        allocation=_to_float(first_present([(g, "allocation")], d["allocation"]), d["allocation"]),
        survivor_expense_percent=_to_float(
            first_present([(g, "survivorExpensePercent")], d["survivor_expense_percent"]),
            d["survivor_expense_percent"],
        ),
        base_tfsa_amount=_to_float(first_present([(g, "baseTfsa")], d["base_tfsa_amount"]), d["base_tfsa_amount"]),
        calculate_gis=_to_bool(first_present([(g, "calculateGis")], d["calculate_gis"])),
    )


def _person_from_row(row: Mapping[str, Any], prefix: str, name: str) -> PersonProfile:
    return normalize_person(
        person_fields(row, prefix),
        advanced=row.get(f"{prefix}AdvancedOptions"),
        db_pension=row.get(f"{prefix}DbPension"),
        global_settings=row.get("globalSettings"),
        name=name,
    )


def assemble_request(row: Mapping[str, Any]) -> CalculationRequest:
    """
    Build the base request shared by every calculation operation.
    In individual mode anything supplied for person 2 is ignored.
    """
    row = row or {}
    individual = scenario_mode(row) == INDIVIDUAL

    person1 = _person_from_row(row, "p1", "Person 1")
    if individual:
        person2 = phantom_person()
        strategy2 = policy_from_collection(None)
    else:
        person2 = _person_from_row(row, "p2", "Person 2")
        strategy2 = policy_from_collection(row.get("p2WithdrawalStrategy"))

    return CalculationRequest(
        person1=person1,
        person2=person2,
        inputs=build_global_assumptions(row, individual),
        strategy_person1=policy_from_collection(row.get("p1WithdrawalStrategy")),
        strategy_person2=strategy2,
    )


# -------------------------
# Finalizer
# -------------------------
def finalize_request(
    request: CalculationRequest,
    operation: Operation,
    target_monthly_spend: Optional[float] = None,
) -> CalculationRequest:
    """
    Apply the per-operation tweaks and return a new request.

    The simulation endpoint reads returns/inflation as decimal fractions while
    the synchronous endpoints read them as percentages, so only monteCarlo
    divides by 100.
    """
    operation = Operation(operation)
    if not operation.builds_payload:
        raise ValueError(f"{operation.value} does not send a calculation request")

    if operation in (Operation.CALCULATE_MAX_SPEND, Operation.CALCULATE_MAX_SPEND_WITH_YEARLY_DATA):
        return request

    spend = _to_float(target_monthly_spend) if target_monthly_spend is not None else None
    if operation == Operation.CALCULATE_WITH_TARGET_SPEND:
        return replace(request, target_monthly_spend=spend)

    inputs = replace(
        request.inputs,
        expected_returns=request.inputs.expected_returns / 100,
        cpi=request.inputs.cpi / 100,
        simulation=dict(MONTE_CARLO_PARAMETERS),
    )
    return replace(request, inputs=inputs, target_monthly_spend=spend)


def build_payload(row: Mapping[str, Any], operation: Operation) -> Dict[str, Any]:
    """Row -> wire dict for one of the POST endpoints."""
    request = assemble_request(row)
    return finalize_request(request, operation, row.get("targetMonthlySpend")).to_payload()
