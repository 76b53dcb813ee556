from unittest import mock

from votelink.extensions import mail
from votelink.models.voting_link import VotingLink
from votelink.services import voting_links


def test_send_marks_link_sent(app, issuance, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1", member_email="m1@example.org")

    with mail.record_messages() as outbox:
        assert voting_links.delivery.send(issued, election.title, name="Amina") is True

    assert len(outbox) == 1
    message = outbox[0]
    assert message.subject == f"Voting Invitation: {election.title}"
    assert f"https://vote.example.org/vote/{issued.token}" in message.body
    assert "Amina" in message.body

    link = store.find_by_hash(issued.link.token_hash)
    assert link.status == VotingLink.STATUS_SENT
    assert link.email_sent is True


def test_send_failure_leaves_link_open(app, issuance, store, redemption, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1", member_email="m1@example.org")

    with mock.patch.object(mail, "send", side_effect=ConnectionRefusedError("smtp down")):
        assert voting_links.delivery.send(issued, election.title) is False

    link = store.find_by_hash(issued.link.token_hash)
    assert link.status == VotingLink.STATUS_PENDING
    assert link.email_sent is False
    assert redemption.redeem(issued.token).member_id == "M1"


def test_send_without_address(app, issuance, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    with mail.record_messages() as outbox:
        assert voting_links.delivery.send(issued, election.title) is False
    assert outbox == []


def test_missing_sender_is_reported_not_raised(app, issuance, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1", member_email="m1@example.org")
    app.config["MAIL_DEFAULT_SENDER"] = None
    assert voting_links.delivery.send(issued, election.title) is False
