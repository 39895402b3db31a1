"""HTTP route handlers for the JIRA Portfolio JSON API."""

import logging
from dataclasses import replace

from flask import Blueprint, jsonify, request

from jira_portfolio.config import (
    Config,
    config_exists,
    field_mappings_from_dict,
    field_mappings_to_dict,
    load_config,
    save_config,
)
from jira_portfolio.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidJqlError,
    InvalidSnapshotError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    NoIssuesFoundError,
    PortfolioError,
)
from jira_portfolio.flow import compute_throughput
from jira_portfolio.forecast import DEFAULT_SIMULATIONS, MAX_SIMULATIONS, forecast
from jira_portfolio.health import evaluate_epics, summarize_dependencies, summarize_epics
from jira_portfolio.initiatives import aggregate_initiatives, summarize_initiatives
from jira_portfolio.jira_client import AuthenticationError, JiraClient
from jira_portfolio.jira_client import ConnectionError as JiraClientConnectionError
from jira_portfolio.models import EpicView, FieldMappings, PortfolioSnapshot, ThroughputPoint
from jira_portfolio.normalize import snapshot_from_dict
from jira_portfolio.portfolio import build_portfolio_view
from jira_portfolio.prioritization import prioritize
from jira_portfolio.serialize import to_dict
from jira_portfolio.snapshot import fetch_portfolio_snapshot

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


def _optional_config() -> Config | None:
    """Config if one is present and valid; the analytics routes work without it."""
    if not config_exists():
        return None
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as e:
        logger.warning("Ignoring invalid configuration: %s", e)
        return None


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidSnapshotError("Request body must be a JSON object")
    return body


def _positive_int(
    body: dict, name: str, default: int | None, maximum: int | None = None
) -> int | None:
    value = body.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidSnapshotError(f"{name} must be a non-negative integer")
    if maximum is not None and value > maximum:
        raise InvalidSnapshotError(f"{name} must be at most {maximum}")
    return value


def _field_mappings(value) -> FieldMappings:
    if not isinstance(value, dict):
        raise InvalidSnapshotError("field_mappings must be an object")
    for name, field_id in value.items():
        if field_id is not None and not isinstance(field_id, str):
            raise InvalidSnapshotError(f"field_mappings.{name} must be a field id string")
    return field_mappings_from_dict(value)


def _epic_analytics(snapshot: PortfolioSnapshot, epics: list[EpicView]) -> dict:
    initiatives = aggregate_initiatives(snapshot.initiatives, epics)
    return {
        "epics": to_dict(epics),
        "initiatives": to_dict(initiatives),
        "initiative_summary": to_dict(summarize_initiatives(initiatives)),
        "summary": to_dict(summarize_epics(epics)),
        "dependencies": to_dict(summarize_dependencies(epics)),
    }


@bp.errorhandler(InvalidSnapshotError)
def handle_invalid_snapshot(e):
    return jsonify({"error": str(e)}), 400


@bp.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok", "config_loaded": config_exists()})


@bp.route("/api/epics", methods=["POST"])
def api_epics():
    """Progress, health and initiative roll-up for a posted snapshot."""
    snapshot = snapshot_from_dict(_json_body())
    return jsonify(_epic_analytics(snapshot, evaluate_epics(snapshot.epics)))


@bp.route("/api/prioritization", methods=["POST"])
def api_prioritization():
    """WSJF / MoSCoW prioritization for a posted snapshot."""
    body = _json_body()
    snapshot = snapshot_from_dict(body)

    if body.get("field_mappings") is not None:
        mappings = _field_mappings(body["field_mappings"])
    else:
        config = _optional_config()
        mappings = config.field_mappings if config else None

    report = prioritize(evaluate_epics(snapshot.epics), mappings)
    return jsonify(to_dict(report))


@bp.route("/api/portfolio", methods=["POST"])
def api_portfolio():
    """Flow metrics, forecast and insights for a posted snapshot."""
    body = _json_body()
    snapshot = snapshot_from_dict(body)
    config = _optional_config()

    view = build_portfolio_view(
        evaluate_epics(snapshot.epics),
        snapshot.initiatives,
        remaining_items=_positive_int(body, "remaining_items", None),
        weeks=_positive_int(body, "weeks", config.cfd_weeks if config else 12),
        simulations=config.simulations if config else DEFAULT_SIMULATIONS,
    )
    return jsonify(to_dict(view))


@bp.route("/api/throughput", methods=["POST"])
def api_throughput():
    """Completed epics per week, month or quarter."""
    body = _json_body()
    snapshot = snapshot_from_dict(body)
    config = _optional_config()
    period = body.get("period") or (config.throughput_period if config else "month")
    try:
        points = compute_throughput(evaluate_epics(snapshot.epics), period)
    except ValueError as e:
        raise InvalidSnapshotError(str(e))
    return jsonify(to_dict(points))


@bp.route("/api/forecast", methods=["POST"])
def api_forecast():
    """Monte Carlo forecast from a posted throughput history."""
    body = _json_body()

    raw_points = body.get("throughput") or []
    if not isinstance(raw_points, list):
        raise InvalidSnapshotError("throughput must be a list")
    try:
        throughput = [
            ThroughputPoint(period=str(p["period"]), count=int(p["count"]))
            for p in raw_points
        ]
    except (KeyError, TypeError, ValueError):
        raise InvalidSnapshotError("throughput entries need a period and an integer count")

    report = forecast(
        throughput,
        _positive_int(body, "remaining_items", 0),
        simulations=_positive_int(body, "simulations", DEFAULT_SIMULATIONS, MAX_SIMULATIONS),
    )
    return jsonify(to_dict(report))


@bp.route("/api/jira/portfolio", methods=["POST"])
def api_jira_portfolio():
    """Fetch epics from JIRA by JQL and return all analytics."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    jql = str(body.get("jql", "")).strip()
    if not jql:
        return jsonify({"error": "JQL query is required."}), 400

    try:
        snapshot = fetch_portfolio_snapshot(jql)
    except (ConfigNotFoundError, InvalidConfigError) as e:
        return jsonify({"error": str(e)}), 503
    except JiraAuthError as e:
        return jsonify({"error": str(e)}), 401
    except JiraRateLimitError as e:
        return jsonify({"error": str(e)}), 429
    except JiraConnectionError as e:
        return jsonify({"error": str(e)}), 503
    except InvalidJqlError as e:
        return jsonify({"error": str(e)}), 400
    except NoIssuesFoundError as e:
        return jsonify({"warning": str(e), "jql": jql}), 200
    except PortfolioError as e:
        return jsonify({"error": str(e)}), 500

    config = _optional_config()
    epics = evaluate_epics(snapshot.epics)
    result = _epic_analytics(snapshot, epics)
    result["jql"] = jql
    result["prioritization"] = to_dict(
        prioritize(epics, config.field_mappings if config else None)
    )
    result["portfolio"] = to_dict(build_portfolio_view(
        epics,
        snapshot.initiatives,
        weeks=config.cfd_weeks if config else 12,
        simulations=config.simulations if config else DEFAULT_SIMULATIONS,
    ))
    return jsonify(result)


@bp.route("/api/fields")
def api_fields():
    """Return JIRA custom fields that can be mapped for prioritization."""
    if not config_exists():
        return jsonify({"error": "Configuration not found"}), 503

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        return jsonify({"error": str(e)}), 503

    try:
        client = JiraClient(config)
        fields = client.list_custom_fields()
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 401
    except JiraClientConnectionError as e:
        return jsonify({"error": str(e)}), 503

    return jsonify({"fields": fields})


@bp.route("/api/field-mappings")
def api_get_field_mappings():
    """Return the configured prioritization field mapping."""
    config = _optional_config()
    mappings = field_mappings_to_dict(config.field_mappings) if config else {}
    return jsonify({"field_mappings": mappings})


@bp.route("/api/field-mappings", methods=["PUT"])
def api_put_field_mappings():
    """Persist the prioritization field mapping to the config file."""
    mappings = _field_mappings(_json_body().get("field_mappings"))
    if not config_exists():
        return jsonify({"error": "Configuration not found"}), 503

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        return jsonify({"error": str(e)}), 503

    save_config(replace(config, field_mappings=mappings))
    logger.info("Saved field mappings: %s", field_mappings_to_dict(mappings))
    return jsonify({"field_mappings": field_mappings_to_dict(mappings)})
