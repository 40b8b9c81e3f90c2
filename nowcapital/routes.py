# nowcapital/routes.py
import logging

from flask import Blueprint, current_app, jsonify, request

from nowcapital.errors import MissingParameterError, OperationError, RemoteServiceError
from nowcapital.models import DEFAULT_BASE_URL, Credentials, Settings
from nowcapital.models.retirement.profile import _to_bool
from nowcapital.models.service.client import NowCapitalClient
from nowcapital.models.service.connector import execute
from nowcapital.models.service.jobs import JobKind, JobResolver

bp_nowcapital = Blueprint("bp_nowcapital", __name__, url_prefix="/nowcapital")
logger = logging.getLogger(__name__)


# -------------------------
# helpers
# -------------------------
def _credentials():
    api_key = (current_app.config.get("NOWCAPITAL_API_KEY") or "").strip()
    if api_key:
        base_url = current_app.config.get("NOWCAPITAL_BASE_URL") or DEFAULT_BASE_URL
        return Credentials(api_key=api_key, base_url=str(base_url).rstrip("/"))
    return Credentials.from_env()


def _client(settings):
    # tests and embedders can hand in a ready client
    injected = current_app.config.get("NOWCAPITAL_CLIENT")
    if injected is not None:
        return injected, False
    return NowCapitalClient(_credentials(), settings), True


def _jerr(msg, code=400, **extra):
    out = {"error": msg}
    out.update(extra)
    return jsonify(out), code


# ✅ Route: POST → run the connector over a batch of items
@bp_nowcapital.route("/execute", methods=["POST"])
def execute_items():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _jerr("Body must be a JSON object")
    items = data.get("items")
    if not isinstance(items, list):
        return _jerr("Body must contain an 'items' list")

    settings = Settings.from_env()
    continue_on_fail = data.get("continueOnFail")
    try:
        client, owned = _client(settings)
    except ValueError as e:
        current_app.logger.error("NowCapital credentials missing: %s", e)
        return _jerr("NowCapital credentials are not configured", 500)

    try:
        results = execute(
            items,
            operation=data.get("operation"),
            continue_on_fail=None if continue_on_fail is None else _to_bool(continue_on_fail),
            settings=settings,
            client=client,
        )
    except OperationError as e:
        cause = e.__cause__
        code = 502 if isinstance(cause, RemoteServiceError) else 400
        if isinstance(cause, MissingParameterError):
            return _jerr(str(e), code, item_index=e.item_index, parameter=cause.name)
        current_app.logger.exception("NowCapital execute failed on item %s", e.item_index)
        return _jerr(str(e), code, item_index=e.item_index)
    finally:
        if owned:
            client.close()

    return jsonify({"results": results}), 200


# ✅ Route: GET → status/result for a simulation task (follows hand-over)
@bp_nowcapital.route("/simulations/<task_id>", methods=["GET"])
def simulation(task_id):
    try:
        kind = JobKind(request.args.get("kind", JobKind.STATUS.value))
    except ValueError:
        return _jerr("kind must be 'status' or 'result'")

    settings = Settings.from_env()
    try:
        client, owned = _client(settings)
    except ValueError:
        return _jerr("NowCapital credentials are not configured", 500)

    try:
        resolver = JobResolver(client, max_handover_depth=settings.max_handover_depth)
        return jsonify(resolver.resolve(task_id, kind)), 200
    except RemoteServiceError as e:
        logger.error(f"Simulation lookup failed for {task_id}: {e}")
        return _jerr(str(e), 502)
    finally:
        if owned:
            client.close()


# ✅ Route: GET → verify the configured API key
@bp_nowcapital.route("/credentials/test", methods=["GET"])
def credentials_test():
    try:
        client, owned = _client(Settings.from_env())
    except ValueError:
        return _jerr("NowCapital credentials are not configured", 500)

    try:
        return jsonify({"ok": True, "response": client.check_credentials()}), 200
    except RemoteServiceError as e:
        logger.error(f"Credential test failed: {e}")
        return jsonify({"ok": False, "error": str(e), "status_code": e.status_code}), 502
    finally:
        if owned:
            client.close()
