# nowcapital/models/service/connector.py
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nowcapital.errors import MissingParameterError, OperationError
from nowcapital.models import Credentials, Settings
from nowcapital.models.retirement.profile import is_absent
from nowcapital.models.retirement.scenario import ENDPOINTS, Operation, build_payload
from nowcapital.models.service.client import NowCapitalClient
from nowcapital.models.service.jobs import JobKind, JobResolver

logger = logging.getLogger(__name__)

DEFAULT_OPERATION = Operation.CALCULATE_MAX_SPEND

PERSON1_REQUIRED = ("p1CurrentAge", "p1RetirementAge", "p1DeathAge", "p1Rrsp", "p1Tfsa")

_JOB_KINDS = {
    Operation.GET_SIMULATION_STATUS: JobKind.STATUS,
    Operation.GET_SIMULATION_RESULT: JobKind.RESULT,
}


def required_fields(operation: Operation) -> tuple:
    if not operation.builds_payload:
        return ("taskId",)
    if operation.needs_target_spend:
        return PERSON1_REQUIRED + ("targetMonthlySpend",)
    return PERSON1_REQUIRED


def validate_row(row: Mapping[str, Any], operation: Operation, item_index: Optional[int] = None):
    for name in required_fields(operation):
        if is_absent(row.get(name)):
            raise MissingParameterError(name, item_index)


def resolve_operation(row: Mapping[str, Any], default=None) -> Operation:
    raw = row.get("operation")
    if is_absent(raw):
        raw = default if default is not None else DEFAULT_OPERATION
    try:
        return Operation(raw)
    except ValueError:
        raise ValueError(f"Unknown operation '{raw}'") from None


def run_row(row: Mapping[str, Any], operation: Operation, client: NowCapitalClient, resolver: JobResolver, item_index=None):
    """One row, one operation. Validation happens before anything goes over the wire."""
    validate_row(row, operation, item_index)

    if operation in _JOB_KINDS:
        return resolver.resolve(str(row["taskId"]).strip(), _JOB_KINDS[operation])

    payload = build_payload(row, operation)
    return client.post(ENDPOINTS[operation], payload)


def execute(
    rows: Iterable[Mapping[str, Any]],
    credentials: Optional[Credentials] = None,
    operation=None,
    continue_on_fail: Optional[bool] = None,
    settings: Optional[Settings] = None,
    client: Optional[NowCapitalClient] = None,
) -> List[Dict[str, Any]]:
    """
    Process rows in order and return one output per row.

    With continue_on_fail a failing row yields {"error": message} and the
    run carries on; otherwise the first failure is raised as OperationError.
    """
    settings = settings or Settings.from_env()
    if continue_on_fail is None:
        continue_on_fail = settings.continue_on_fail

    own_client = client is None
    if own_client:
        client = NowCapitalClient(credentials or Credentials.from_env(), settings)
    resolver = JobResolver(client, max_handover_depth=settings.max_handover_depth)

    out: List[Dict[str, Any]] = []
    try:
        for i, row in enumerate(rows):
            row = row or {}
            try:
                op = resolve_operation(row, operation)
                out.append(run_row(row, op, client, resolver, item_index=i))
            except Exception as e:
                if continue_on_fail:
                    logger.warning("Item %s failed, continuing: %s", i, e)
                    out.append({"error": str(e)})
                    continue
                logger.error("Item %s failed: %s", i, e)
                raise OperationError(str(e), item_index=i) from e
    finally:
        if own_client:
            client.close()
    return out
