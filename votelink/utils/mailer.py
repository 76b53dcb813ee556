from flask_mail import Message
from flask import current_app
from ..extensions import mail

def send_voting_link_email(to_email: str, election_title: str, vote_url: str, expires_at, name: str | None = None) -> None:
    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    if not sender:
        # Fail fast with a meaningful message (instead of Flask-Mail assertion)
        raise RuntimeError(
            "MAIL_DEFAULT_SENDER is not configured. Set MAIL_DEFAULT_SENDER in .env"
        )

    subject = f"Voting Invitation: {election_title}"
    body = (
        f"Hello {name or 'member'},\n\n"
        f"You are invited to vote in {election_title}.\n"
        f"Open your personal voting link: {vote_url}\n\n"
        "This link is unique to you and can only be used once.\n"
        f"It expires on {expires_at:%Y-%m-%d %H:%M} UTC.\n"
        "Do not share this link with anyone."
    )
    msg = Message(subject=subject, recipients=[to_email], body=body, sender=sender)
    mail.send(msg)
