from flask import Blueprint, request, current_app
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...exceptions import LinkNotFound, VotingLinkError
from ...models.voting_link import VotingLink
from ...schemas.voting_link import BulkIssueSchema, IssueLinkSchema, VotingLinkReadSchema
from ...services import voting_links
from ...utils.audit import safe_audit
from ...utils.rbac import ADMIN_ROLES, assert_chapter_access, chapter_election, current_actor, roles_required
from ...utils.validation import load_or_abort

links_bp = Blueprint("voting_links", __name__)

issue_schema = IssueLinkSchema()
bulk_issue_schema = BulkIssueSchema()
link_read_schema = VotingLinkReadSchema()
link_read_many_schema = VotingLinkReadSchema(many=True)


def _link_or_404(link_id: str) -> VotingLink:
    link = voting_links.store.get(link_id)
    if link is None:
        raise LinkNotFound(details={"link_id": link_id})
    assert_chapter_access(link.chapter)
    return link


def _issued_payload(issued, email_sent: bool) -> dict:
    link = issued.link
    return {
        "link": link_read_schema.dump(link),
        # Returned once; it cannot be recovered later
        "token": issued.token,
        "vote_url": voting_links.delivery.vote_url(issued.token),
        "email_sent": email_sent,
    }


@links_bp.post("/")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Voting Links"],
    "summary": "Issue a one-time voting link for a member",
    "description": "Revokes any open link for the same member and election, then issues a new one.",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "member_id": {"type": "string", "example": "64b7f0c2e1"},
                "member_email": {"type": "string", "example": "member@chapter.org"},
                "election_id": {"type": "string", "example": "uuid"},
                "expires_at": {"type": "string", "format": "date-time"},
                "send_email": {"type": "boolean", "example": True},
            },
            "required": ["member_id", "election_id"],
        },
    }],
    "responses": {
        201: {"description": "Link issued"},
        400: {"description": "Validation error"},
        403: {"description": "Forbidden"},
        404: {"description": "Election not found"},
        409: {"description": "Election not open"},
        503: {"description": "Storage unavailable"},
    },
    "security": [{"BearerAuth": []}],
})
def issue_link():
    payload = request.get_json(silent=True) or {}
    payload = load_or_abort(issue_schema, payload)

    election = chapter_election(payload["election_id"])
    issuer_id, role = current_actor()

    try:
        issued = voting_links.issuance.issue_link(
            member_id=payload["member_id"],
            election_id=election.id,
            chapter=election.chapter,
            issuer_id=issuer_id,
            member_email=payload.get("member_email"),
            expires_at=payload.get("expires_at"),
        )
    except VotingLinkError as e:
        safe_audit(
            "VOTE_LINK_GENERATE_FAILED",
            entity_type="LINK",
            election_id=election.id,
            chapter=election.chapter,
            details={"member_id": payload["member_id"], "code": e.code},
            success=False,
        )
        raise

    email_sent = False
    if payload["send_email"]:
        email_sent = voting_links.delivery.send(issued, election.title, name=payload.get("name"))

    safe_audit(
        "VOTE_LINK_GENERATED",
        entity_type="LINK",
        entity_id=issued.link.id,
        election_id=election.id,
        chapter=election.chapter,
        details={"member_id": payload["member_id"], "member_email": payload.get("member_email"), "role": role},
    )
    return _issued_payload(issued, email_sent), 201


@links_bp.post("/bulk")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Voting Links"],
    "summary": "Issue voting links for a list of members",
    "description": "Members who already hold a usable open link keep it unless replace_existing is set. "
                   "Per-member failures are reported in errors without undoing the other members.",
    "responses": {
        201: {"description": "Links issued"},
        200: {"description": "No new links issued"},
        400: {"description": "Validation error"},
        404: {"description": "Election not found"},
        409: {"description": "Election not open"},
    },
    "security": [{"BearerAuth": []}],
})
def issue_links_bulk():
    payload = request.get_json(silent=True) or {}
    payload = load_or_abort(bulk_issue_schema, payload)

    election = chapter_election(payload["election_id"])
    issuer_id, role = current_actor()
    members = {m["member_id"]: m for m in payload["members"]}

    outcome = voting_links.issuance.issue_links(
        election.id, payload["members"], issuer_id, skip_existing=not payload["replace_existing"]
    )

    results = []
    for issued in outcome.issued:
        member = members.get(issued.link.member_id, {})
        email_sent = False
        if payload["send_email"]:
            email_sent = voting_links.delivery.send(issued, election.title, name=member.get("name"))
        safe_audit(
            "VOTE_LINK_GENERATED",
            entity_type="LINK",
            entity_id=issued.link.id,
            election_id=election.id,
            chapter=election.chapter,
            details={"member_id": issued.link.member_id, "member_email": member.get("member_email"), "role": role, "bulk": True},
        )
        results.append({**_issued_payload(issued, email_sent), "already_exists": False})

    for link in outcome.existing:
        results.append({"link": link_read_schema.dump(link), "already_exists": True, "email_sent": False})

    errors = []
    for member_id, e in outcome.failed:
        safe_audit(
            "VOTE_LINK_GENERATE_FAILED",
            entity_type="LINK",
            election_id=election.id,
            chapter=election.chapter,
            details={"member_id": member_id, "code": e.code, "bulk": True},
            success=False,
        )
        errors.append({"member_id": member_id, "code": e.code, "message": e.message})

    current_app.logger.info(
        "Bulk voting links election=%s new=%s existing=%s failed=%s",
        election.id, len(outcome.issued), len(outcome.existing), len(errors),
    )

    return {
        "message": f"Generated {len(outcome.issued)} voting links",
        "total": len(results),
        "new_links": len(outcome.issued),
        "existing_links": len(outcome.existing),
        "failed": len(errors),
        "links": results,
        "errors": errors,
    }, 201 if outcome.issued else 200


@links_bp.get("/election/<election_id>")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Voting Links"],
    "summary": "List voting links for an election (tokens are never included)",
    "parameters": [
        {"in": "path", "name": "election_id", "type": "string", "required": True},
        {"in": "query", "name": "status", "type": "string", "required": False},
        {"in": "query", "name": "page", "type": "integer", "required": False, "default": 1},
        {"in": "query", "name": "limit", "type": "integer", "required": False, "default": 50},
    ],
    "responses": {200: {"description": "Links"}, 400: {"description": "Bad request"}, 404: {"description": "Election not found"}},
    "security": [{"BearerAuth": []}],
})
def list_links(election_id):
    election = chapter_election(election_id)

    status = request.args.get("status")
    if status and status not in VotingLink.VALID_STATUSES:
        return {"message": f"Invalid status. Use one of {', '.join(VotingLink.VALID_STATUSES)}"}, 400

    try:
        page = max(int(request.args.get("page", 1)), 1)
        limit = min(max(int(request.args.get("limit", 50)), 1), 200)
    except ValueError:
        return {"message": "Invalid page/limit"}, 400

    links, total = voting_links.store.list_for_election(election.id, status=status, page=page, per_page=limit)

    return {
        "links": link_read_many_schema.dump(links),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }, 200


@links_bp.post("/<link_id>/sent")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Voting Links"],
    "summary": "Delivery callback: mark a link as emailed",
    "responses": {200: {"description": "Marked"}, 404: {"description": "Link not found"}, 409: {"description": "Link not open"}},
    "security": [{"BearerAuth": []}],
})
def mark_link_sent(link_id):
    link = _link_or_404(link_id)
    if not voting_links.issuance.mark_sent(link.token_hash):
        return {"message": f"Link is {link.status}; only open links can be marked sent"}, 409

    safe_audit("VOTE_LINK_SENT", entity_type="LINK", entity_id=link.id, election_id=link.election_id, chapter=link.chapter)
    return {"link": link_read_schema.dump(voting_links.store.get(link_id))}, 200


@links_bp.delete("/<link_id>")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Voting Links"],
    "summary": "Revoke a voting link",
    "description": "Idempotent. Terminal links are left unchanged.",
    "responses": {200: {"description": "Revoked or already terminal"}, 404: {"description": "Link not found"}},
    "security": [{"BearerAuth": []}],
})
def revoke_link(link_id):
    link = _link_or_404(link_id)
    revoked = voting_links.issuance.revoke(link.token_hash)

    safe_audit(
        "VOTE_LINK_REVOKED",
        entity_type="LINK",
        entity_id=link.id,
        election_id=link.election_id,
        chapter=link.chapter,
        details={"changed": revoked},
    )
    return {"revoked": revoked, "link": link_read_schema.dump(voting_links.store.get(link_id))}, 200
