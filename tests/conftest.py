from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from supabase import AuthError

from skillswap import create_app, db
from skillswap.models import Profile, Skill, SkillCategory, SkillType, UserSkill

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


class FakeAuthError(AuthError):
    def __init__(self, message, code=None):
        Exception.__init__(self, message)
        self.message = message
        self.code = code


class FakeAuth:
    """Stands in for supabase.auth; records every call."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.user_id = "user-alice"
        self.admin = FakeAdmin(self)

    def sign_up(self, credentials):
        self.calls.append(("sign_up", credentials))
        if self.error:
            raise self.error
        return SimpleNamespace(
            user=SimpleNamespace(id="user-new", email=credentials["email"]),
            session=None,
        )

    def sign_in_with_password(self, credentials):
        self.calls.append(("sign_in", credentials))
        if self.error:
            raise self.error
        return SimpleNamespace(
            user=SimpleNamespace(id=self.user_id, email=credentials["email"]),
            session=SimpleNamespace(access_token="token-" + credentials["email"].split("@")[0]),
        )

    def sign_out(self):
        raise AssertionError("the shared client session must not be signed out")


class FakeAdmin:
    """Stands in for supabase.auth.admin."""

    def __init__(self, auth):
        self._auth = auth

    def sign_out(self, jwt, scope="global"):
        self._auth.calls.append(("sign_out", jwt, scope))
        if self._auth.error:
            raise self._auth.error


@pytest.fixture
def supabase():
    return SimpleNamespace(auth=FakeAuth())


@pytest.fixture
def app(tmp_path, supabase):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'skillswap.db'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False}},
            "SEARCH_DEBOUNCE_SECONDS": 0.01,
        },
        supabase=supabase,
    )

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user_id="user-alice"):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["email"] = f"{user_id}@example.com"
    return _login


@pytest.fixture
def make_profile(app):
    def _make(username, full_name=None, minutes=0, **kwargs):
        profile = Profile(
            user_id=f"user-{username}",
            username=username,
            full_name=full_name or username.title(),
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **kwargs,
        )
        db.session.add(profile)
        db.session.commit()
        return profile
    return _make


@pytest.fixture
def make_skill(app):
    def _make(name, category=SkillCategory.technology, description=None):
        skill = Skill(name=name, category=category, description=description)
        db.session.add(skill)
        db.session.commit()
        return skill
    return _make


@pytest.fixture
def link_skill(app):
    def _link(profile, skill, skill_type=SkillType.offered, proficiency_level=None):
        link = UserSkill(
            user_id=profile.user_id,
            skill_id=skill.id,
            skill_type=skill_type,
            proficiency_level=proficiency_level,
        )
        db.session.add(link)
        db.session.commit()
        return link
    return _link
