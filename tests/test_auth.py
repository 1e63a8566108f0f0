import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from prismpath.config import DEFAULT_JWT_SECRET, get_settings
from prismpath.schemas.auth import SignUpRequest
from prismpath.services.identity import LOCAL_ISSUER, AccountExistsError, AuthenticationError
from prismpath.services.mock_store import MockStore
from prismpath.services.student_data import SupabaseStore
from prismpath.services.student_service import BackendAvailability, StudentService
from prismpath.services.identity import IdentityService

STRONG_PASSWORD = "Sunflower-Garden-42"


def sign_up_body(**overrides):
    body = {
        "email": "new.teacher@school.org",
        "password": STRONG_PASSWORD,
        "name": "New Teacher",
        "role": "sped",
        "school": "Lincoln Elementary",
        "school_district": "District 9",
        "school_id": "school-1",
    }
    body.update(overrides)
    return body


class TestLocalIdentity:
    def test_sign_up_and_sign_in(self, identity, mock_store):
        session = identity.sign_up(SignUpRequest(**sign_up_body()))
        assert session["user"].role == "sped"
        assert session["user"].school_id == "school-1"
        assert mock_store.get_user_by_email("new.teacher@school.org")["password_hash"].startswith("$2")

        again = identity.sign_in("new.teacher@school.org", STRONG_PASSWORD)
        assert again["user"].uid == session["user"].uid
        assert identity.resolve_token(again["access_token"]).uid == session["user"].uid

    def test_defaults(self, identity):
        body = sign_up_body(name=None)
        del body["role"]
        user = identity.sign_up(SignUpRequest(**body))["user"]
        assert user.name == "new.teacher"
        assert user.role == "regular_ed"

    def test_parent_profile_uses_home_school(self, identity):
        user = identity.sign_up(SignUpRequest(**sign_up_body(role="parent")))["user"]
        assert user.school_id == "home_school"
        assert user.school == ""

    def test_weak_password_rejected(self, identity):
        with pytest.raises(ValueError, match="12 characters"):
            identity.sign_up(SignUpRequest(**sign_up_body(password="short")))

    def test_duplicate_email(self, identity):
        identity.sign_up(SignUpRequest(**sign_up_body()))
        with pytest.raises(AccountExistsError):
            identity.sign_up(SignUpRequest(**sign_up_body(email="New.Teacher@school.org")))

    def test_bad_credentials(self, identity):
        identity.sign_up(SignUpRequest(**sign_up_body()))
        with pytest.raises(AuthenticationError):
            identity.sign_in("new.teacher@school.org", "Wrong-Password-99")
        with pytest.raises(AuthenticationError):
            identity.sign_in("nobody@school.org", STRONG_PASSWORD)

    def test_expired_token(self, identity):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "teacher-1", "iss": LOCAL_ISSUER, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError, match="expired"):
            identity.resolve_token(token)

    def test_foreign_token_without_remote(self, identity):
        with pytest.raises(AuthenticationError):
            identity.resolve_token("not-a-jwt")

    def test_inactive_profile(self, identity, mock_store):
        mock_store.upsert_user({"uid": "teacher-1", "is_active": False})
        with pytest.raises(AuthenticationError):
            identity.resolve_token(identity.issue_local_token("teacher-1"))

    def test_sign_out_local_token_is_noop(self, identity):
        identity.sign_out(identity.issue_local_token("teacher-1"))

    def test_default_secret_is_reported(self, identity, caplog):
        settings = replace(get_settings(), jwt_secret=DEFAULT_JWT_SECRET)
        with caplog.at_level(logging.ERROR, logger="prismpath.services.identity"):
            IdentityService(identity.students, settings)
        assert "JWT_SECRET is the default value" in caplog.text


class FakeAuth:
    def __init__(self):
        self.signed_out = []

    def sign_up(self, credentials):
        if credentials["email"] == "taken@school.org":
            raise Exception("User already registered")
        return SimpleNamespace(
            user=SimpleNamespace(id="remote-user"),
            session=SimpleNamespace(access_token="remote-token"),
        )

    def get_user(self, token):
        if token != "remote-token":
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id="remote-user"))

    @property
    def admin(self):
        return SimpleNamespace(sign_out=self.signed_out.append)


class TestRemoteIdentity:
    @pytest.fixture
    def remote_identity(self, fake_supabase):
        fake_supabase.auth = FakeAuth()
        remote = SupabaseStore(fake_supabase)
        service = StudentService(remote=remote, mock=MockStore(), availability=BackendAvailability(remote.ping))
        return IdentityService(service, get_settings())

    def test_sign_up_writes_profile_remotely(self, remote_identity, fake_supabase):
        session = remote_identity.sign_up(SignUpRequest(**sign_up_body()))

        assert session["access_token"] == "remote-token"
        assert fake_supabase.tables["users"][0]["uid"] == "remote-user"
        assert remote_identity.resolve_token("remote-token").role == "sped"

    def test_duplicate_remote_account(self, remote_identity):
        with pytest.raises(AccountExistsError):
            remote_identity.sign_up(SignUpRequest(**sign_up_body(email="taken@school.org")))

    def test_invalid_remote_token(self, remote_identity):
        with pytest.raises(AuthenticationError):
            remote_identity.resolve_token("forged")

    def test_local_token_does_not_resolve_remote_users(self, remote_identity, fake_supabase):
        fake_supabase.tables["users"] = [{"uid": "remote-admin", "role": "admin", "is_active": True}]
        settings = get_settings()
        token = jwt.encode(
            {"sub": "remote-admin", "iss": LOCAL_ISSUER, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError):
            remote_identity.resolve_token(token)

    def test_sign_out_revokes_remote_session(self, remote_identity, fake_supabase):
        remote_identity.sign_out("remote-token")
        assert fake_supabase.auth.signed_out == ["remote-token"]


class TestAuthRoutes:
    def test_signup_signin_me(self, client):
        response = client.post("/auth/signup", json=sign_up_body())
        assert response.status_code == 201
        token = response.json()["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "new.teacher@school.org"

        signin = client.post("/auth/signin", json={"email": "new.teacher@school.org", "password": STRONG_PASSWORD})
        assert signin.status_code == 200
        assert signin.json()["token_type"] == "bearer"

    def test_signup_errors(self, client):
        assert client.post("/auth/signup", json=sign_up_body(password="weak")).status_code == 400
        client.post("/auth/signup", json=sign_up_body())
        assert client.post("/auth/signup", json=sign_up_body()).status_code == 409

    def test_signin_bad_password(self, client):
        client.post("/auth/signup", json=sign_up_body())
        response = client.post("/auth/signin", json={"email": "new.teacher@school.org", "password": "nope"})
        assert response.status_code == 401

    def test_missing_and_malformed_header(self, client):
        assert client.get("/auth/me").status_code == 401
        assert client.get("/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
        assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    def test_password_check(self, client):
        response = client.post("/auth/password-check", json={"password": "Abcdefghijk1"})
        body = response.json()
        assert body["valid"] is False
        assert body["strength"] == "good"
        assert body["indicator"]["label"] == "Good"

    def test_signout(self, client, teacher_headers):
        assert client.post("/auth/signout", headers=teacher_headers).status_code == 200
