from marshmallow import Schema, fields, validate, validates_schema, ValidationError
from ..extensions import ma

class MemberSchema(Schema):
    member_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    member_email = fields.Email(required=False, allow_none=True)
    name = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))

class IssueLinkSchema(MemberSchema):
    election_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    expires_at = fields.DateTime(required=False, allow_none=True)
    send_email = fields.Bool(load_default=True)

class BulkIssueSchema(Schema):
    election_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    members = fields.List(fields.Nested(MemberSchema), required=True, validate=validate.Length(min=1, max=1000))
    send_email = fields.Bool(load_default=True)
    # Supersede members' open links instead of keeping them
    replace_existing = fields.Bool(load_default=False)

    @validates_schema
    def unique_members(self, data, **kwargs):
        ids = [m["member_id"] for m in data.get("members", [])]
        if len(ids) != len(set(ids)):
            raise ValidationError("Each member may appear only once", field_name="members")

class RedeemSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=256))
    positions = fields.List(fields.Str(validate=validate.Length(min=1, max=64)), load_default=list)

class VotingLinkReadSchema(ma.Schema):
    # token_hash is safe to show admins; the plaintext token is never stored
    id = fields.Str()
    member_id = fields.Str()
    member_email = fields.Str(allow_none=True)
    election_id = fields.Str()
    chapter = fields.Str()
    token_hash = fields.Str()
    status = fields.Str()
    expires_at = fields.DateTime()
    used_at = fields.DateTime(allow_none=True)
    used_for_positions = fields.List(fields.Str(), allow_none=True)
    generated_by = fields.Str()
    generated_at = fields.DateTime()
    email_sent = fields.Bool()
    email_sent_at = fields.DateTime(allow_none=True)
    accessed_at = fields.DateTime(allow_none=True)
    access_count = fields.Int()
    last_access_ip = fields.Str(allow_none=True)
