def swagger_template(app=None):
    title = "Chapter Voting Links API"
    version = "1.0.0"

    if app:
        title = app.config.get("SWAGGER_TITLE", title)
        version = app.config.get("SWAGGER_VERSION", version)

    return {
        "swagger": "2.0",
        "info": {
            "title": title,
            "version": version,
            "description": "Issue, deliver and redeem one-time voting links for chapter elections.",
        },
        "securityDefinitions": {
            "BearerAuth": {
                "type": "apiKey",
                "name": "Authorization",
                "in": "header",
                "description": "JWT from the identity service: Bearer <token>"
            }
        },
        "definitions": {
            "ErrorResponse": {
                "type": "object",
                "properties": {
                    "success": {"type": "boolean", "example": False},
                    "error": {
                        "type": "object",
                        "properties": {
                            "code": {"type": "string", "example": "INVALID_VOTING_LINK"},
                            "message": {"type": "string", "example": "This voting link is invalid or has already been used."},
                            "details": {"type": "object"}
                        }
                    },
                    "request_id": {"type": "string"}
                }
            },
            "Redemption": {
                "type": "object",
                "properties": {
                    "member_id": {"type": "string"},
                    "election_id": {"type": "string"},
                    "chapter": {"type": "string"}
                }
            }
        }
    }
