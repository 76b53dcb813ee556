from flask import Blueprint, request, current_app
from flasgger import swag_from
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...models.election import Election
from ...schemas.election import ElectionCreateSchema, ElectionReadSchema
from ...services import voting_links
from ...utils.audit import audit_log, safe_audit
from ...utils.clock import to_naive_utc
from ...utils.rbac import ADMIN_ROLES, assert_chapter_access, chapter_election, current_actor, roles_required
from ...utils.validation import load_or_abort

elections_bp = Blueprint("elections", __name__)

election_create_schema = ElectionCreateSchema()
election_read_schema = ElectionReadSchema()


@elections_bp.post("/")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Elections"],
    "summary": "Create a draft election",
    "responses": {201: {"description": "Created"}, 400: {"description": "Validation error"}, 403: {"description": "Forbidden"}},
    "security": [{"BearerAuth": []}],
})
def create_election():
    payload = request.get_json(silent=True) or {}
    payload = load_or_abort(election_create_schema, payload)
    assert_chapter_access(payload["chapter"])

    user_id, role = current_actor()
    election = Election(
        chapter=payload["chapter"].strip(),
        title=payload["title"].strip(),
        starts_at=to_naive_utc(payload["starts_at"]) if payload.get("starts_at") else None,
        ends_at=to_naive_utc(payload["ends_at"]) if payload.get("ends_at") else None,
        created_by=str(user_id),
        status=Election.STATUS_DRAFT,
    )

    try:
        db.session.add(election)
        db.session.flush()
        audit_log(
            action="ELECTION_CREATED",
            entity_type="ELECTION",
            entity_id=election.id,
            election_id=election.id,
            chapter=election.chapter,
            details={"title": election.title, "created_by_role": role},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error creating election")
        return {"message": "Failed to create election"}, 500

    return {"election": election_read_schema.dump(election)}, 201


@elections_bp.get("/<election_id>")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({"tags": ["Elections"], "summary": "Get election details", "responses": {200: {}, 403: {}, 404: {}}})
def get_election(election_id):
    return {"election": election_read_schema.dump(chapter_election(election_id))}, 200


@elections_bp.post("/<election_id>/open")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Elections"],
    "summary": "Open an election for voting",
    "responses": {200: {"description": "Opened"}, 400: {"description": "Not a draft"}, 404: {"description": "Not found"}},
    "security": [{"BearerAuth": []}],
})
def open_election(election_id):
    election = chapter_election(election_id)
    try:
        election.open()
    except ValueError as e:
        return {"message": str(e)}, 400

    try:
        audit_log(
            action="ELECTION_OPENED",
            entity_type="ELECTION",
            entity_id=election.id,
            election_id=election.id,
            chapter=election.chapter,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error opening election")
        return {"message": "Failed to open election"}, 500

    return {"election": election_read_schema.dump(election)}, 200


@elections_bp.post("/<election_id>/close")
@jwt_required()
@roles_required(*ADMIN_ROLES)
@swag_from({
    "tags": ["Elections"],
    "summary": "Close an election and revoke its outstanding voting links",
    "responses": {200: {"description": "Closed"}, 400: {"description": "Not open"}, 404: {"description": "Not found"}},
    "security": [{"BearerAuth": []}],
})
def close_election(election_id):
    election = chapter_election(election_id)
    try:
        election.close()
    except ValueError as e:
        return {"message": str(e)}, 400

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error closing election")
        return {"message": "Failed to close election"}, 500

    revoked = voting_links.store.revoke_open_for_election(election.id)
    current_app.logger.info("Closed election=%s, revoked %s open voting links", election.id, revoked)

    safe_audit(
        "ELECTION_CLOSED",
        entity_type="ELECTION",
        entity_id=election.id,
        election_id=election.id,
        chapter=election.chapter,
        details={"links_revoked": revoked},
    )
    return {"election": election_read_schema.dump(election), "links_revoked": revoked}, 200
