import logging
from datetime import timedelta

from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

from wishingwell import settings
from wishingwell.errors import WellsError
from wishingwell.realtime import init_socketio, broadcast_donation
from wishingwell.routes import core, wells
from wishingwell.services.campaign_service import CampaignManager
from wishingwell.services.donation_service import DonationPipeline
from wishingwell.services.ledger_store import build_ledger_store
from wishingwell.services.payment_gateway import build_payment_gateway
from wishingwell.services.reconciliation_service import ReconciliationService
from wishingwell.utils import cache

log = logging.getLogger(__name__)


def _invalidate_progress(receipt) -> None:
    cache.invalidate(cache.progress_key(receipt.campaign_id))


def create_app(config: dict | None = None):
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # JWT
    app.config["JWT_SECRET_KEY"] = settings.JWT_SECRET
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_NAME"] = "Authorization"
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(minutes=15)
    app.config.update(config or {})
    JWTManager(app)

    store = app.config.get("LEDGER_STORE") or build_ledger_store(
        app.config.get("LEDGER_BACKEND")
    )
    gateway = app.config.get("PAYMENT_GATEWAY") or build_payment_gateway()
    reconciliation = ReconciliationService(store)
    pipeline = DonationPipeline(
        store,
        gateway,
        reconciliation,
        message_threshold=app.config.get("MESSAGE_THRESHOLD_CENTS"),
        enqueue_retry=app.config.get("ENQUEUE_RETRY"),
    )
    pipeline.add_listener(_invalidate_progress)
    pipeline.add_listener(broadcast_donation)
    app.extensions["wishingwell"] = {
        "store": store,
        "gateway": gateway,
        "campaigns": CampaignManager(store, gateway),
        "donations": pipeline,
        "reconciliation": reconciliation,
    }

    @app.errorhandler(WellsError)
    def handle_wells_error(e: WellsError):
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "error": e.name}), e.code
        log.exception("[api] unhandled error")
        return jsonify({"success": False, "error": "SERVER_UNKNOWN_ERROR"}), 500

    app.register_blueprint(core)
    app.register_blueprint(wells, url_prefix="/wells")

    init_socketio(app)
    return app
