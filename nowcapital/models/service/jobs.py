# nowcapital/models/service/jobs.py
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Dict, List

from nowcapital.models.retirement.profile import is_absent

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
PENDING = "PENDING"
FAILURE = "FAILURE"

# A result that only says "the real work moved to another task"
HANDOVER_STATUS = "ORCHESTRATED"
SUB_TASK_FIELD = "sub_task_id"


class JobKind(str, Enum):
    STATUS = "status"
    RESULT = "result"


class ResolverState(Enum):
    QUERYING_STATUS = "querying_status"
    QUERYING_RESULT = "querying_result"
    FOLLOWING_SUBJOB = "following_subjob"
    DONE = "done"


def _status_of(payload) -> str:
    if isinstance(payload, dict):
        return str(payload.get("status") or "").upper()
    return ""


def handover_target(result) -> str:
    """Return the sub-task id if `result` is a hand-over marker, else ''."""
    if not isinstance(result, dict):
        return ""
    if _status_of(result) != HANDOVER_STATUS:
        return ""
    sub_id = result.get(SUB_TASK_FIELD)
    return "" if is_absent(sub_id) else str(sub_id)


class JobResolver:
    """
    Status/result lookup for simulation tasks.

    QUERYING_STATUS -> (not SUCCESS) -> DONE with the status verbatim
                    -> QUERYING_RESULT -> (hand-over) -> FOLLOWING_SUBJOB -> DONE
                                       -> (plain)     -> DONE
    A followed sub-task is fetched once with the caller's kind and is not
    inspected for a further hand-over unless max_handover_depth > 1.
    """

    def __init__(self, client, max_handover_depth: int = 1):
        self.client = client
        self.max_handover_depth = max(0, int(max_handover_depth))
        self.history: List[ResolverState] = []

    def _fetch(self, kind: JobKind, task_id: str):
        if kind is JobKind.RESULT:
            return self.client.get_result(task_id)
        return self.client.get_status(task_id)

    def resolve(self, task_id: str, kind=JobKind.STATUS) -> Any:
        kind = JobKind(kind)
        original_id = str(task_id)
        current_id = original_id
        depth = 0
        status = None
        response = None
        sub_id = ""

        self.history = []
        state = ResolverState.QUERYING_STATUS
        while state is not ResolverState.DONE:
            self.history.append(state)

            if state is ResolverState.QUERYING_STATUS:
                status = self.client.get_status(current_id)
                if _status_of(status) != SUCCESS:
                    response = status
                    state = ResolverState.DONE
                else:
                    state = ResolverState.QUERYING_RESULT

            elif state is ResolverState.QUERYING_RESULT:
                result = self.client.get_result(current_id)
                sub_id = handover_target(result)
                if sub_id and depth < self.max_handover_depth:
                    state = ResolverState.FOLLOWING_SUBJOB
                else:
                    response = result if kind is JobKind.RESULT else status
                    state = ResolverState.DONE

            elif state is ResolverState.FOLLOWING_SUBJOB:
                depth += 1
                logger.info("Task %s handed over to %s", current_id, sub_id)
                current_id = sub_id
                if depth >= self.max_handover_depth:
                    response = self._fetch(kind, current_id)
                    state = ResolverState.DONE
                else:
                    state = ResolverState.QUERYING_STATUS

        self.history.append(ResolverState.DONE)
        if current_id != original_id:
            return self._annotate(response, original_id, current_id)
        return response

    @staticmethod
    def _annotate(response, original_id: str, sub_id: str) -> Dict[str, Any]:
        out = dict(response) if isinstance(response, dict) else {"response": response}
        out["original_task_id"] = original_id
        out["sub_task_id"] = sub_id
        return out
