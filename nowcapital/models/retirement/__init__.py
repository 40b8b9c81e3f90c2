# nowcapital/models/retirement/__init__.py
from nowcapital.models.retirement.profile import PersonProfile, DbPension, normalize_person, phantom_person
from nowcapital.models.retirement.withdrawal import WithdrawalPolicy, build_withdrawal_policy
from nowcapital.models.retirement.scenario import (
    CalculationRequest,
    GlobalAssumptions,
    Operation,
    assemble_request,
    build_payload,
    finalize_request,
)
