from flask import Blueprint, request, current_app
from flasgger import swag_from

from ...errors import invalid_link_response
from ...exceptions import InvalidToken
from ...schemas.voting_link import RedeemSchema
from ...services import voting_links
from ...utils.audit import client_ip, safe_audit
from ...utils.validation import load_or_abort

redeem_bp = Blueprint("redeem", __name__)
redeem_schema = RedeemSchema()


@redeem_bp.post("/redeem")
@swag_from({
    "tags": ["Voting"],
    "summary": "Redeem a one-time voting link",
    "description": (
        "Consumes the link exactly once and returns who may vote in which election. "
        "Every failure returns the same INVALID_VOTING_LINK error."
    ),
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "token": {"type": "string"},
                "positions": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["token"],
        },
    }],
    "responses": {
        200: {"description": "Link redeemed"},
        400: {"description": "Validation error"},
        401: {"description": "Invalid, expired or used link"},
        503: {"description": "Storage unavailable, safe to retry"},
    },
})
def redeem():
    payload = request.get_json(silent=True) or {}
    payload = load_or_abort(redeem_schema, payload)

    try:
        redemption = voting_links.redemption.redeem(
            payload["token"],
            positions=payload["positions"],
            ip=client_ip(),
        )
    except InvalidToken as e:
        current_app.logger.info("Voting link redemption rejected: %s", e.code)
        safe_audit(
            "VOTE_LINK_REDEEM_FAILED",
            entity_type="LINK",
            details={"reason": e.code},
            success=False,
        )
        return invalid_link_response()

    safe_audit(
        "VOTE_LINK_REDEEMED",
        entity_type="LINK",
        election_id=redemption.election_id,
        chapter=redemption.chapter,
        details={"member_id": redemption.member_id, "positions": payload["positions"]},
    )
    return {
        "message": "Voting link accepted",
        "member_id": redemption.member_id,
        "election_id": redemption.election_id,
        "chapter": redemption.chapter,
    }, 200


@redeem_bp.get("/<token>/status")
@swag_from({
    "tags": ["Voting"],
    "summary": "Check whether a voting link can still be used",
    "parameters": [{"in": "path", "name": "token", "type": "string", "required": True}],
    "responses": {200: {"description": "OK"}, 503: {"description": "Storage unavailable"}},
})
def link_status(token):
    return {"valid": voting_links.redemption.check_token(token, ip=client_ip())}, 200
