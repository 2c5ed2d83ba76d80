from flask import Blueprint, current_app, g, jsonify, request

from wishingwell import settings
from wishingwell.utils import cache
from wishingwell.utils.authz import require_user
from wishingwell.utils.validation import coerce_int

wells = Blueprint("wells", __name__)


def _services():
    return current_app.extensions["wishingwell"]


def _source_token(body: dict) -> str | None:
    # the web client posts Stripe.js tokens as {"token": {"tokenId": "..."}}
    token = body.get("token")
    if isinstance(token, dict):
        return token.get("tokenId")
    return body.get("payment_source") or token


# GET /wells
@wells.get("/")
def list_wells():
    items = _services()["campaigns"].list_campaigns()
    return jsonify({"success": True, "wells": [w.to_dict() for w in items]}), 200


# GET /wells/<id>
@wells.get("/<well_id>")
def get_well(well_id):
    detail = _services()["campaigns"].get_campaign(well_id)
    return jsonify({"success": True, "well": detail.to_dict()}), 200


@wells.get("/<well_id>/progress")
def well_progress(well_id):
    key = cache.progress_key(well_id)
    cached = cache.get_json(key)
    if cached:
        return jsonify(cached), 200

    detail = _services()["campaigns"].get_campaign(well_id)
    w = detail.campaign
    percent = 0.0
    if w.target_amount > 0:
        percent = round(min(100.0, (w.current_amount / w.target_amount) * 100.0), 2)
    resp = {
        "well_id": w.id,
        "status": w.status,
        "target_amount": w.target_amount,
        "current_amount": w.current_amount,
        "percent": percent,
        "donations_count": len(detail.donations),
        "expires_at": w.expires_at.isoformat(),
    }
    cache.set_json(key, resp, settings.PROGRESS_CACHE_TTL)
    return jsonify(resp), 200


# POST /wells/create  { title, description, location, target_amount, duration_days, token }
@wells.post("/create")
@require_user
def create_well():
    body = request.get_json(force=True, silent=True) or {}
    well = _services()["campaigns"].create_campaign(
        owner_id=g.current_user.id,
        title=body.get("title"),
        description=body.get("description", ""),
        location=body.get("location"),
        target_amount=coerce_int(body.get("target_amount", body.get("funding_target"))),
        duration_days=coerce_int(body.get("duration_days", body.get("time"))),
        payout_token=body.get("payout_token"),
        payout_source_token=_source_token(body),
    )
    return jsonify({"success": True, "well": well.to_dict()}), 201


# PUT /wells/donate  { id, amount, token, message? }
@wells.put("/donate")
@require_user
def donate():
    body = request.get_json(force=True, silent=True) or {}
    well_id = body.get("id")
    if not well_id:
        return jsonify({"success": False, "error": "WELL_NOT_FOUND"}), 404
    receipt = _services()["donations"].donate(
        campaign_id=str(well_id),
        donor_id=g.current_user.id,
        donor_email=g.current_user.email,
        amount_minor=coerce_int(body.get("amount")),
        payment_source=_source_token(body),
        message=body.get("message") if isinstance(body.get("message"), str) else None,
    )
    status = 202 if receipt.reconciliation_required else 200
    return jsonify(receipt.to_dict()), status


# POST /wells/<id>/close
@wells.post("/<well_id>/close")
@require_user
def close_well(well_id):
    well = _services()["campaigns"].close_campaign(g.current_user.id, well_id)
    return jsonify({"success": True, "well": well.to_dict()}), 200
