"""SCIM 2.0 Bulk endpoint (RFC 7644 Section 3.7).

Exposes the bulk processor over HTTP so identity providers can push one
envelope and have it replayed against Grist.

Architecture:
    POST /scim/v2/Bulk -> gristctl/core/scim_bulk.py -> GristClient -> Grist SCIM API

The raw request body goes to the processor untouched; envelope parsing and
validation happen there so this layer and the CLI report identical errors.
"""

from __future__ import annotations
import logging
from flask import Blueprint, request, jsonify, Response, current_app

from gristctl.core.scim_bulk import ScimError

# SCIM 2.0 Blueprint
bp = Blueprint('scim', __name__, url_prefix='/scim/v2')

SCIM_CONTENT_TYPE = "application/scim+json"
ACCEPTED_CONTENT_TYPES = (SCIM_CONTENT_TYPE, "application/json")

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Error Handler
# ─────────────────────────────────────────────────────────────────────────────

def scim_response(payload: dict, status: int) -> Response:
    """Serialize a SCIM document with the SCIM media type."""
    response = jsonify(payload)
    response.status_code = status
    response.mimetype = SCIM_CONTENT_TYPE
    return response


def scim_error(status: int, detail: str, scim_type: str = None) -> Response:
    """Create SCIM error Response object.

    Args:
        status: HTTP status code
        detail: Human-readable error description
        scim_type: Optional SCIM error type (invalidSyntax, invalidValue, etc.)
    """
    error = ScimError(status, detail, scim_type)
    return scim_response(error.to_dict(), status)


@bp.errorhandler(ScimError)
def handle_scim_error(error: ScimError):
    """Global error handler for ScimError exceptions."""
    return scim_response(error.to_dict(), error.status)


@bp.errorhandler(413)
def handle_request_too_large(error):
    """Handle payload too large errors raised while reading the body."""
    return scim_error(413, "Request payload exceeds maximum allowed size", "tooLarge")


# ─────────────────────────────────────────────────────────────────────────────
# Request Validation Middleware
# ─────────────────────────────────────────────────────────────────────────────

@bp.before_request
def validate_request():
    """Reject oversized bodies and unexpected content types before parsing."""
    if request.method != "POST":
        return None

    max_bytes = current_app.config.get("SCIM_BULK_MAX_PAYLOAD_BYTES")
    if max_bytes and request.content_length and request.content_length > max_bytes:
        return scim_error(413, f"Request payload exceeds maximum allowed size ({max_bytes} bytes)", "tooLarge")

    content_type = request.mimetype or ""
    if content_type not in ACCEPTED_CONTENT_TYPES:
        return scim_error(
            415,
            "Content-Type must be application/scim+json",
            "invalidSyntax"
        )
    return None


@bp.after_request
def add_correlation_id(response):
    """Add correlation ID to response headers for tracing."""
    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        response.headers["X-Correlation-Id"] = correlation_id
    return response


# ─────────────────────────────────────────────────────────────────────────────
# SCIM Discovery
# ─────────────────────────────────────────────────────────────────────────────

@bp.route('/ServiceProviderConfig', methods=['GET'])
def service_provider_config():
    """Return SCIM ServiceProviderConfig (RFC 7643 Section 5)."""
    config = {
        "schemas": ["urn:ietf:params:scim:schemas:core:2.0:ServiceProviderConfig"],
        "patch": {
            "supported": True
        },
        "bulk": {
            "supported": True,
            "maxOperations": 0,
            "maxPayloadSize": current_app.config.get("SCIM_BULK_MAX_PAYLOAD_BYTES", 0)
        },
        "filter": {
            "supported": False,
            "maxResults": 0
        },
        "changePassword": {
            "supported": False
        },
        "sort": {
            "supported": False
        },
        "etag": {
            "supported": False
        },
        "authenticationSchemes": []
    }
    return scim_response(config, 200)


# ─────────────────────────────────────────────────────────────────────────────
# SCIM Bulk
# ─────────────────────────────────────────────────────────────────────────────

@bp.route('/Bulk', methods=['POST'])
def bulk():
    """Process a SCIM Bulk request.

    Returns:
        200 with a BulkResponse whatever the per-operation outcomes, or
        400 when the envelope itself is unusable
    """
    processor = current_app.config["SCIM_BULK_PROCESSOR"]
    raw = request.get_data(as_text=True)

    bulk_response, status = processor.process_text(raw)

    correlation_id = request.headers.get("X-Correlation-Id", "none")
    logger.info(
        f"SCIM bulk | status={status} | results={len(bulk_response.operations)} | "
        f"correlation_id={correlation_id}"
    )
    return scim_response(bulk_response.to_dict(), status)
