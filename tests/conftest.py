"""
Shared fixtures: an app on a throwaway SQLite file, admin JWTs and an open election.
"""
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token
from sqlalchemy.pool import NullPool

from votelink import create_app
from votelink.config import Config
from votelink.extensions import db
from votelink.models.election import Election
from votelink.services import voting_links
from votelink.utils.clock import utcnow

TEST_SECRET = "test-vote-link-secret-0123456789abcdef"


class SuiteConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-key-for-testing-only"
    VOTE_LINK_SECRET = TEST_SECRET
    FRONTEND_URL = "https://vote.example.org"
    MAIL_DEFAULT_SENDER = "elections@example.org"
    MAIL_SUPPRESS_SEND = True
    # One connection per session so concurrent threads really race in SQLite
    SQLALCHEMY_ENGINE_OPTIONS = {"poolclass": NullPool, "connect_args": {"timeout": 30}}


@pytest.fixture
def app(tmp_path):
    class _Config(SuiteConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'votelink.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_headers(role="SYSTEM_ADMIN", chapter="Nairobi", identity="admin-1"):
    token = create_access_token(identity=identity, additional_claims={"role": role, "chapter": chapter})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app):
    return make_headers()


@pytest.fixture
def chapter_admin_headers(app):
    return make_headers(role="CHAPTER_ADMIN", chapter="Nairobi", identity="chapter-admin-1")


@pytest.fixture
def election(app):
    election = Election(
        chapter="Nairobi",
        title="Chapter Executive 2026",
        created_by="admin-1",
        status=Election.STATUS_OPEN,
        opened_at=utcnow(),
    )
    db.session.add(election)
    db.session.commit()
    return election


@pytest.fixture
def draft_election(app):
    election = Election(chapter="Nairobi", title="Draft Election", created_by="admin-1", status=Election.STATUS_DRAFT)
    db.session.add(election)
    db.session.commit()
    return election


@pytest.fixture
def issuance(app):
    return voting_links.issuance


@pytest.fixture
def redemption(app):
    return voting_links.redemption


@pytest.fixture
def store(app):
    return voting_links.store


@pytest.fixture
def past():
    return utcnow() - timedelta(seconds=1)


@pytest.fixture
def auth_headers(app):
    """Factory for JWT headers with a given role/chapter."""
    return make_headers
