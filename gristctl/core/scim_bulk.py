"""
SCIM 2.0 Bulk processor (RFC 7644 Section 3.7).

Takes one Bulk envelope holding an ordered list of user-directory operations
and replays them, one HTTP call each, against the Grist SCIM API.

Pipeline:
    raw text / BulkRequest
        -> validate_envelope()          envelope-level checks (overall 400)
        -> ScimBulkProcessor._run()     per operation, in request order:
               validate_operation()     verb whitelist, path presence
               ScimBulkProcessor.dispatch()   one transport call
        -> BulkResponse + overall status

Per-operation failures never abort the envelope; they only count toward the
client's failOnErrors budget. Once the budget is spent the remaining
operations are silently dropped from the response.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from gristctl.core.grist import GristConnectionError

logger = logging.getLogger(__name__)

# SCIM schemas
BULK_REQUEST_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:BulkRequest"
BULK_RESPONSE_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:BulkResponse"
SCIM_ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"

ALLOWED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
DEFAULT_SCIM_BASE_PATH = "/api/scim/v2"

# Status recorded when the transport could not reach the backend at all
TRANSPORT_ERROR_STATUS = 502
# Method echoed on the result synthesized for an unparseable envelope
ENVELOPE_METHOD = "POST"


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class ScimError(Exception):
    """SCIM protocol error with HTTP status and optional scimType."""

    def __init__(self, status: int, detail: str, scim_type: Optional[str] = None):
        self.status = status
        self.detail = detail
        self.scim_type = scim_type
        super().__init__(detail)

    def to_dict(self) -> dict:
        """Convert to SCIM error response format."""
        error_dict = {
            "schemas": [SCIM_ERROR_SCHEMA],
            "status": str(self.status),
            "detail": self.detail
        }
        if self.scim_type:
            error_dict["scimType"] = self.scim_type
        return error_dict


class EnvelopeError(ScimError):
    """The Bulk envelope itself cannot be processed."""

    def __init__(self, detail: str, scim_type: str = "invalidSyntax"):
        super().__init__(400, detail, scim_type)


class OperationValidationError(ScimError):
    """One operation is not eligible for dispatch."""

    def __init__(self, detail: str):
        super().__init__(400, detail, "invalidValue")


# ─────────────────────────────────────────────────────────────────────────────
# Data Model
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class BulkOperation:
    """One sub-request of a Bulk envelope. ``data`` is any JSON value."""
    method: str
    path: str
    bulk_id: Optional[str] = None
    data: Any = None

    @classmethod
    def from_dict(cls, raw: Any) -> "BulkOperation":
        if not isinstance(raw, dict):
            raise EnvelopeError("Each entry of Operations must be an object")
        method = raw.get("method")
        path = raw.get("path")
        return cls(
            method=method if isinstance(method, str) else "",
            path=path if isinstance(path, str) else "",
            bulk_id=raw.get("bulkId"),
            data=raw.get("data"),
        )


@dataclass
class BulkRequest:
    schemas: list[str]
    operations: list[BulkOperation] = field(default_factory=list)
    fail_on_errors: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "BulkRequest":
        """Build a request from its decoded wire form.

        Raises:
            EnvelopeError: If the document cannot form a Bulk request
        """
        if not isinstance(payload, dict):
            raise EnvelopeError("Bulk request body must be a JSON object")

        schemas = payload.get("schemas", [])
        if not isinstance(schemas, list):
            raise EnvelopeError("schemas must be a list of URNs")

        operations = payload.get("Operations", [])
        if not isinstance(operations, list):
            raise EnvelopeError("Operations must be a list")

        fail_on_errors = payload.get("failOnErrors")
        if fail_on_errors is not None:
            # bool is an int subclass; true/false is not a threshold
            if isinstance(fail_on_errors, bool) or not isinstance(fail_on_errors, int) or fail_on_errors < 0:
                raise EnvelopeError("failOnErrors must be a non-negative integer", "invalidValue")

        return cls(
            schemas=schemas,
            operations=[BulkOperation.from_dict(op) for op in operations],
            fail_on_errors=fail_on_errors,
        )

    @classmethod
    def from_json(cls, raw: str) -> "BulkRequest":
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise EnvelopeError(f"Request body is not valid JSON: {exc}") from exc
        return cls.from_dict(payload)


@dataclass
class BulkOperationResult:
    """Outcome of one processed operation.

    ``status`` stays an int for comparisons; ``to_dict`` renders the decimal
    string the wire format requires.
    """
    method: str
    status: int
    bulk_id: Optional[str] = None
    location: Optional[str] = None
    response: Any = None

    @property
    def failed(self) -> bool:
        return self.status >= 400

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"method": self.method}
        if self.bulk_id is not None:
            result["bulkId"] = self.bulk_id
        if self.location:
            result["location"] = self.location
        result["status"] = str(self.status)
        if self.response is not None:
            result["response"] = self.response
        return result


@dataclass
class BulkResponse:
    operations: list[BulkOperationResult] = field(default_factory=list)
    schemas: list[str] = field(default_factory=lambda: [BULK_RESPONSE_SCHEMA])

    def to_dict(self) -> dict:
        return {
            "schemas": list(self.schemas),
            "Operations": [result.to_dict() for result in self.operations],
        }


# ─────────────────────────────────────────────────────────────────────────────
# Validation Functions
# ─────────────────────────────────────────────────────────────────────────────

def validate_envelope(bulk_request: BulkRequest) -> None:
    """Check the envelope before any operation is looked at.

    Raises:
        EnvelopeError: If schemas lacks the BulkRequest URN, or failOnErrors
            is negative
    """
    if BULK_REQUEST_SCHEMA not in (bulk_request.schemas or []):
        raise EnvelopeError(f"schemas must contain '{BULK_REQUEST_SCHEMA}'", "invalidValue")

    if bulk_request.fail_on_errors is not None and bulk_request.fail_on_errors < 0:
        raise EnvelopeError("failOnErrors must be a non-negative integer", "invalidValue")


def validate_operation(operation: BulkOperation) -> None:
    """Check one operation's shape. Never touches the network.

    Raises:
        OperationValidationError: On a disallowed verb or an empty path
    """
    method = (operation.method or "").upper()
    if method not in ALLOWED_METHODS:
        raise OperationValidationError(
            f"Unsupported bulk method '{operation.method}'. "
            f"Allowed: {', '.join(sorted(ALLOWED_METHODS))}"
        )

    if not (operation.path or "").strip():
        raise OperationValidationError("Operation path is required")


# ─────────────────────────────────────────────────────────────────────────────
# Processor
# ─────────────────────────────────────────────────────────────────────────────

class ScimBulkProcessor:
    """Replays SCIM Bulk envelopes against the Grist SCIM API.

    The processor holds no per-call state; one instance may serve any number
    of envelopes as long as the injected client does.

    Usage:
        processor = ScimBulkProcessor(GristClient(url, token))
        bulk_response, status = processor.process_text(body)
    """

    def __init__(self, client, scim_base_path: str = DEFAULT_SCIM_BASE_PATH):
        """
        Args:
            client: Transport exposing ``request(method, path, json=None)``
                that returns a response-like object (``status_code``, ``text``,
                ``headers``) and raises GristConnectionError when unreachable
            scim_base_path: Prefix joined in front of every operation path
        """
        self.client = client
        self.scim_base_path = "/" + scim_base_path.strip("/")

    def process(self, bulk_request: BulkRequest) -> tuple[BulkResponse, int]:
        """Process an already-parsed envelope.

        Returns:
            Tuple of (BulkResponse, overall HTTP status)
        """
        try:
            validate_envelope(bulk_request)
        except EnvelopeError as exc:
            logger.warning("Rejected bulk envelope: %s", exc.detail)
            return BulkResponse(), exc.status

        return self._run(bulk_request), 200

    def process_text(self, raw: str) -> tuple[BulkResponse, int]:
        """Parse raw text, then process it like ``process``.

        An unparseable envelope yields a single synthesized 400 result so the
        caller always has something to diagnose.
        """
        try:
            bulk_request = BulkRequest.from_json(raw)
        except EnvelopeError as exc:
            logger.warning("Rejected bulk envelope: %s", exc.detail)
            result = BulkOperationResult(
                method=ENVELOPE_METHOD,
                status=exc.status,
                response=exc.to_dict(),
            )
            return BulkResponse(operations=[result]), exc.status

        return self.process(bulk_request)

    def dispatch(self, operation: BulkOperation) -> BulkOperationResult:
        """Send one validated operation to the backend and capture the outcome."""
        method = operation.method.upper()
        target = self.target_path(operation.path)
        logger.debug("Bulk dispatch %s %s (bulkId=%s)", method, target, operation.bulk_id)

        try:
            resp = self.client.request(method, target, json=operation.data)
        except GristConnectionError as exc:
            error = ScimError(TRANSPORT_ERROR_STATUS, f"Backend unreachable: {exc.reason}")
            return BulkOperationResult(
                method=operation.method,
                status=TRANSPORT_ERROR_STATUS,
                bulk_id=operation.bulk_id,
                response=error.to_dict(),
            )

        body = _decode_body(resp.text)
        return BulkOperationResult(
            method=operation.method,
            status=resp.status_code,
            bulk_id=operation.bulk_id,
            location=_extract_location(resp.headers, body),
            response=body,
        )

    def target_path(self, path: str) -> str:
        """Join the SCIM base path and an operation path with one slash."""
        return f"{self.scim_base_path}/{path.strip().lstrip('/')}"

    def _run(self, bulk_request: BulkRequest) -> BulkResponse:
        """Validate and dispatch each operation in order, honouring failOnErrors."""
        limit = bulk_request.fail_on_errors or 0
        results: list[BulkOperationResult] = []
        failure_count = 0

        for index, operation in enumerate(bulk_request.operations):
            try:
                validate_operation(operation)
            except OperationValidationError as exc:
                result = BulkOperationResult(
                    method=operation.method,
                    status=exc.status,
                    bulk_id=operation.bulk_id,
                    response=exc.to_dict(),
                )
            else:
                result = self.dispatch(operation)

            results.append(result)
            if result.failed:
                failure_count += 1
                logger.warning(
                    "Bulk operation %d failed | method=%s | path=%s | bulkId=%s | status=%d",
                    index, operation.method, operation.path, operation.bulk_id, result.status,
                )

            if limit and failure_count >= limit:
                skipped = len(bulk_request.operations) - len(results)
                if skipped:
                    logger.warning(
                        "failOnErrors=%d reached; %d operation(s) not processed", limit, skipped
                    )
                break

        logger.info(
            "Bulk processed %d/%d operation(s), %d failed",
            len(results), len(bulk_request.operations), failure_count,
        )
        return BulkResponse(operations=results)


# ─────────────────────────────────────────────────────────────────────────────
# Utility Functions
# ─────────────────────────────────────────────────────────────────────────────

def _decode_body(text: Optional[str]) -> Any:
    """JSON when possible, raw text otherwise, None for an empty body."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _extract_location(headers, body: Any) -> Optional[str]:
    location = (headers or {}).get("Location")
    if location:
        return location
    if isinstance(body, dict):
        meta = body.get("meta")
        if isinstance(meta, dict) and isinstance(meta.get("location"), str):
            return meta["location"]
    return None
