from datetime import timedelta

from votelink.models.voting_link import VotingLink
from votelink.utils.clock import utcnow


def test_expire_command(app, issuance, store, election):
    overdue = issuance.issue_link("M1", election.id, None, "admin-1", expires_at=utcnow() - timedelta(minutes=1))
    fresh = issuance.issue_link("M2", election.id, None, "admin-1")

    result = app.test_cli_runner().invoke(args=["voting-links", "expire"])

    assert result.exit_code == 0
    assert "Expired 1 voting link(s)" in result.output
    assert store.find_by_hash(overdue.link.token_hash).status == VotingLink.STATUS_EXPIRED
    assert store.find_by_hash(fresh.link.token_hash).status == VotingLink.STATUS_PENDING


def test_purge_command(app, issuance, store, election):
    old = issuance.issue_link("M1", election.id, None, "admin-1", expires_at=utcnow() - timedelta(days=45))
    recent = issuance.issue_link("M2", election.id, None, "admin-1", expires_at=utcnow() - timedelta(days=1))
    # Read the hashes now; the purged row cannot be refreshed afterwards
    old_hash, recent_hash = old.link.token_hash, recent.link.token_hash

    result = app.test_cli_runner().invoke(args=["voting-links", "purge", "--days", "30"])

    assert result.exit_code == 0
    assert "Purged 1 voting link(s)" in result.output
    assert store.find_by_hash(old_hash) is None
    assert store.find_by_hash(recent_hash) is not None


def test_purge_rejects_negative_days(app):
    result = app.test_cli_runner().invoke(args=["voting-links", "purge", "--days", "-1"])
    assert result.exit_code != 0
