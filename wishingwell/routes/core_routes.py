from flask import Blueprint, Response, jsonify
from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST

core = Blueprint("core", __name__)


@core.get("/")
def root():
    return jsonify({"service": "wells-api", "ok": True})


@core.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        generate_latest(REGISTRY),
        mimetype=CONTENT_TYPE_LATEST,
    )
