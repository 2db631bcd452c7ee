"""HTTP routes for the Flask API."""

import hmac
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from backend.config import Settings
from backend.core.health import get_health_status
from backend.core.insights import get_market_insights
from backend.core.market_data import MarketDataGateway
from backend.core.projection import InvalidInput, forecast
from backend.core.rate_limit import SlidingWindowLimiter
from backend.database import (
    list_consultation_emails,
    list_contacts,
    save_consultation_email,
    save_contact,
)
from backend.schemas.forecast import ForecastRequest, ForecastResponse
from backend.schemas.health import HealthResponse
from backend.schemas.leads import ConsultationEmailRequest, ContactRequest, LeadAck
from backend.schemas.market import (
    InsightsResponse,
    MarketMeta,
    MarketResponse,
    RatesMeta,
    RatesResponse,
)

api_bp = Blueprint("api", __name__)


def _settings() -> Settings:
    return current_app.config["SETTINGS"]


def _gateway() -> MarketDataGateway:
    return current_app.extensions["market_gateway"]


def _limiter() -> SlidingWindowLimiter:
    return current_app.extensions["rate_limiter"]


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@api_bp.before_request
def _enforce_rate_limit():
    client = request.remote_addr or "unknown"
    limiter = _limiter()
    if limiter.is_allowed(client):
        return None
    current_app.logger.warning("rate limit exceeded for %s", client)
    response = jsonify({"success": False, "detail": "Too many requests, please try again later."})
    response.status_code = HTTPStatus.TOO_MANY_REQUESTS
    response.headers["Retry-After"] = str(limiter.retry_after(client))
    return response


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    detail = exc.errors(include_url=False, include_context=False)
    return jsonify({"success": False, "detail": detail}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(InvalidInput)
def _handle_invalid_input(exc: InvalidInput):
    return jsonify({"success": False, "detail": exc.errors}), HTTPStatus.BAD_REQUEST


@api_bp.get("/health")
def health() -> Any:
    """Health-check endpoint."""
    return jsonify(HealthResponse(**get_health_status()).model_dump())


@api_bp.post("/calculations/forecast")
def calculate_forecast() -> Any:
    """Project every asset class for the requested horizon and risk profile."""
    payload = ForecastRequest.model_validate(_json_body())

    market = None
    if _settings().live_rates:
        market, _ = _gateway().current()

    result = forecast(payload, market=market)
    response = ForecastResponse(
        message="Investment projections calculated successfully",
        data=result,
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.get("/calculations/market-insights")
def market_insights() -> Any:
    response = InsightsResponse(
        message="Market insights retrieved successfully",
        data=get_market_insights(),
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.get("/market/current")
def market_current() -> Any:
    """
    Current market snapshot. ?refresh=true bypasses the cache, except within
    the refresh cooldown of the last fetch.
    """
    gateway = _gateway()
    force_refresh = request.args.get("refresh", "").lower() == "true"
    if force_refresh:
        age = gateway.snapshot_age()
        if age is not None and age < _settings().refresh_cooldown_seconds:
            current_app.logger.info("refresh ignored, last fetch %.1fs ago", age)
            force_refresh = False

    snapshot, cached = gateway.current(force_refresh=force_refresh)

    if cached:
        message = "Market data retrieved successfully (cached)"
    elif force_refresh:
        message = "Market data refreshed successfully"
    else:
        message = "Market data retrieved successfully"

    response = MarketResponse(
        message=message,
        data=snapshot,
        meta=MarketMeta(
            lastUpdated=snapshot.fetchedAt,
            cached=cached,
            apiStatus=snapshot.status_map(),
        ),
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.get("/market/rates")
def market_rates() -> Any:
    """Decimal annual rates per asset class, live where available."""
    snapshot, _ = _gateway().current()
    response = RatesResponse(
        message="Investment rates retrieved successfully",
        data=snapshot.rates(),
        meta=RatesMeta(
            lastUpdated=snapshot.fetchedAt,
            source="Mixed: live data where available, historical averages otherwise",
        ),
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.post("/collect-email")
def collect_email() -> Any:
    lead = ConsultationEmailRequest.model_validate(_json_body())
    save_consultation_email(_settings().database_path, lead, ip=request.remote_addr)
    current_app.logger.info("consultation email collected")
    ack = LeadAck(message="Email collected successfully")
    return jsonify(ack.model_dump()), HTTPStatus.CREATED


@api_bp.post("/contact")
def contact() -> Any:
    submission = ContactRequest.model_validate(_json_body())
    save_contact(_settings().database_path, submission, ip=request.remote_addr)
    current_app.logger.info("contact form submitted")
    ack = LeadAck(message="Contact form submitted successfully")
    return jsonify(ack.model_dump()), HTTPStatus.CREATED


def _is_admin() -> bool:
    expected = _settings().admin_password
    if not expected:
        return False
    supplied = request.args.get("password", "")
    return hmac.compare_digest(supplied.encode(), expected.encode())


@api_bp.get("/emails")
def emails() -> Any:
    if not _is_admin():
        return jsonify({"success": False, "error": "Unauthorized"}), HTTPStatus.UNAUTHORIZED
    records = list_consultation_emails(_settings().database_path)
    return jsonify([record.model_dump() for record in records])


@api_bp.get("/contacts")
def contacts() -> Any:
    if not _is_admin():
        return jsonify({"success": False, "error": "Unauthorized"}), HTTPStatus.UNAUTHORIZED
    records = list_contacts(_settings().database_path)
    return jsonify([record.model_dump() for record in records])
