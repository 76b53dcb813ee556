from flask import abort
from marshmallow import ValidationError

def load_or_abort(schema, payload):
    """Validate and deserialize a request body, aborting 400 with field errors."""
    try:
        return schema.load(payload)
    except ValidationError as err:
        abort(
            400,
            description={
                "code": "VALIDATION_ERROR",
                "message": "Validation error",
                "errors": err.messages,
            },
        )
