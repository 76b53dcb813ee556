from marshmallow import Schema, fields, validate, validates_schema, ValidationError
from ..extensions import ma

class ElectionCreateSchema(Schema):
    chapter = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    starts_at = fields.DateTime(required=False, allow_none=True)
    ends_at = fields.DateTime(required=False, allow_none=True)

    @validates_schema
    def window_is_ordered(self, data, **kwargs):
        starts_at, ends_at = data.get("starts_at"), data.get("ends_at")
        if starts_at and ends_at and ends_at <= starts_at:
            raise ValidationError("ends_at must be after starts_at", field_name="ends_at")

class ElectionReadSchema(ma.Schema):
    id = fields.Str()
    chapter = fields.Str()
    title = fields.Str()
    status = fields.Str()
    starts_at = fields.DateTime(allow_none=True)
    ends_at = fields.DateTime(allow_none=True)
    created_by = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    opened_at = fields.DateTime(allow_none=True)
    closed_at = fields.DateTime(allow_none=True)
