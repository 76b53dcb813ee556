from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from threading import Barrier
from unittest import mock

import pytest

from votelink.exceptions import InvalidToken, StorageUnavailable, TokenAlreadyUsed, TokenExpired
from votelink.models.voting_link import VotingLink
from votelink.services import voting_links
from votelink.services.redemption import Redemption, RedemptionService
from votelink.utils.clock import utcnow


def test_redeem_scenario(issuance, redemption, election, past):
    issued = issuance.issue_link("M1", election.id, "Nairobi", "admin-1")

    result = redemption.redeem(issued.token, positions=["president"])
    assert result == Redemption(member_id="M1", election_id=election.id, chapter="Nairobi")

    with pytest.raises(TokenAlreadyUsed):
        redemption.redeem(issued.token)

    with pytest.raises(InvalidToken):
        redemption.redeem("garbage")

    expired = issuance.issue_link("M2", election.id, "Nairobi", "admin-1", expires_at=past)
    with pytest.raises(TokenExpired):
        redemption.redeem(expired.token)


def test_failures_are_all_invalid_token():
    assert issubclass(TokenExpired, InvalidToken)
    assert issubclass(TokenAlreadyUsed, InvalidToken)


def test_redeem_records_positions(issuance, redemption, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    redemption.redeem(issued.token, positions=["president", "treasurer"])

    link = store.find_by_hash(issued.link.token_hash)
    assert link.status == VotingLink.STATUS_USED
    assert link.used_for_positions == ["president", "treasurer"]


def test_expired_link_is_marked_and_stays_expired(issuance, redemption, store, election, past):
    issued = issuance.issue_link("M1", election.id, None, "admin-1", expires_at=past)

    with pytest.raises(TokenExpired):
        redemption.redeem(issued.token)
    assert store.find_by_hash(issued.link.token_hash).status == VotingLink.STATUS_EXPIRED

    with pytest.raises(TokenExpired):
        redemption.redeem(issued.token)


def test_pending_link_past_deadline_is_not_valid(issuance, redemption, election, past):
    # pending and sent links are both subject to the deadline
    issued = issuance.issue_link("M1", election.id, None, "admin-1", expires_at=past)
    assert issued.link.status == VotingLink.STATUS_PENDING
    assert redemption.is_valid(issued.link.token_hash) is False


def test_revoked_link_is_invalid(issuance, redemption, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    issuance.revoke(issued.link.token_hash)

    with pytest.raises(InvalidToken) as exc:
        redemption.redeem(issued.token)
    assert type(exc.value) is InvalidToken


def test_unknown_well_formed_token_is_invalid(redemption):
    token, _ = voting_links.codec.issue()
    with pytest.raises(InvalidToken) as exc:
        redemption.redeem(token)
    assert type(exc.value) is InvalidToken


def test_is_valid_has_no_side_effects_beyond_telemetry(issuance, redemption, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    token_hash = issued.link.token_hash

    assert redemption.is_valid(token_hash, ip="10.1.1.1") is True
    assert redemption.is_valid(token_hash, ip="10.1.1.2") is True

    link = store.find_by_hash(token_hash)
    assert link.status == VotingLink.STATUS_PENDING
    assert link.access_count == 2
    assert link.last_access_ip == "10.1.1.2"

    redemption.redeem(issued.token)
    assert redemption.is_valid(token_hash) is False
    assert redemption.check_token(issued.token) is False
    assert redemption.check_token("garbage") is False


def test_check_token(issuance, redemption, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    assert redemption.check_token(issued.token) is True


def test_every_attempt_counts_access(issuance, redemption, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    redemption.redeem(issued.token, ip="192.0.2.1")
    with pytest.raises(TokenAlreadyUsed):
        redemption.redeem(issued.token, ip="192.0.2.2")

    link = store.find_by_hash(issued.link.token_hash)
    assert link.access_count == 2
    assert link.last_access_ip == "192.0.2.2"


def test_storage_failure_is_not_retried(issuance, redemption, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")

    with mock.patch.object(
        type(redemption.store), "transition_to_used", side_effect=StorageUnavailable()
    ) as transition:
        with pytest.raises(StorageUnavailable):
            redemption.redeem(issued.token)
    assert transition.call_count == 1

    # The link was not consumed, so the client can safely retry
    assert redemption.redeem(issued.token).member_id == "M1"


@pytest.mark.parametrize("attempts", [2, 10, 100])
def test_concurrent_redemption_succeeds_exactly_once(app, issuance, election, attempts):
    issued = issuance.issue_link("M1", election.id, None, "admin-1")
    token = issued.token
    barrier = Barrier(attempts)

    def attempt():
        with app.app_context():
            service = voting_links.redemption
            barrier.wait()
            try:
                return service.redeem(token)
            except InvalidToken as e:
                return e

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(attempts)))

    successes = [o for o in outcomes if isinstance(o, Redemption)]
    failures = [o for o in outcomes if isinstance(o, InvalidToken)]
    assert len(successes) == 1
    assert len(failures) == attempts - 1
    assert all(isinstance(f, (TokenAlreadyUsed, InvalidToken)) for f in failures)
    assert not any(isinstance(f, TokenExpired) for f in failures)


def test_expiry_boundary_uses_service_clock(issuance, store, election):
    issued = issuance.issue_link("M1", election.id, None, "admin-1", expires_at=utcnow() + timedelta(minutes=5))
    later = RedemptionService(store, voting_links.codec, clock=lambda: utcnow() + timedelta(minutes=6))

    with pytest.raises(TokenExpired):
        later.redeem(issued.token)
