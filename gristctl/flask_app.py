"""Flask application factory and bootstrap.

This module provides the create_app() factory function for serving the SCIM
Bulk endpoint in front of a Grist server.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from gristctl.config import GristConfig, load_settings
from gristctl.core.grist import GristClient
from gristctl.core.scim_bulk import ScimBulkProcessor

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[GristConfig] = None, client: Optional[GristClient] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings; loaded from the environment when omitted
        client: Transport shared by every request; built from cfg when omitted
    """
    cfg = cfg or load_settings()
    client = client or GristClient(cfg.grist_url, cfg.grist_token, timeout=cfg.request_timeout)

    app = Flask(__name__)

    # Store config and collaborators for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["GRIST_CLIENT"] = client
    app.config["SCIM_BULK_PROCESSOR"] = ScimBulkProcessor(client, cfg.scim_base_path)
    app.config["SCIM_BULK_MAX_PAYLOAD_BYTES"] = cfg.bulk_max_payload_bytes
    app.config["MAX_CONTENT_LENGTH"] = cfg.bulk_max_payload_bytes

    # Register blueprints
    from gristctl.api import health, errors
    from gristctl.api import scim

    app.register_blueprint(health.bp)
    app.register_blueprint(scim.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    logger.info("[flask_app] SCIM 2.0 Bulk endpoint registered at /scim/v2/Bulk -> %s", cfg.grist_url)

    return app
