"""
Email/password identity on top of Supabase Auth.

When the remote backend is not reachable, accounts live in the mock store
with bcrypt password hashes and sessions are locally signed JWTs. The user
profile (role, school) is a separate record in the ``users`` table either way.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import bcrypt
import jwt

from prismpath.config import DEFAULT_JWT_SECRET, Settings, get_settings
from prismpath.schemas.auth import Role, SignUpRequest, UserProfile
from prismpath.schemas.student import HOME_SCHOOL_ID
from prismpath.services.student_service import StudentService, get_student_service
from prismpath.utils.dates import now_iso
from prismpath.utils.password_validator import validate_password

logger = logging.getLogger(__name__)

LOCAL_ISSUER = "prismpath-local"


class AuthenticationError(Exception):
    pass


class AccountExistsError(ValueError):
    pass


class IdentityService:
    def __init__(self, students: StudentService, settings: Settings):
        self.students = students
        self.settings = settings
        if settings.jwt_secret == DEFAULT_JWT_SECRET:
            logger.error("JWT_SECRET is the default value; set a private secret before deploying")

    @property
    def remote_auth(self):
        remote = self.students.remote
        if remote is not None and self.students.availability.is_available():
            return remote.supabase.auth
        return None

    # ------------------------------------------------------------------
    # Local sessions
    # ------------------------------------------------------------------

    def issue_local_token(self, uid: str, email: str = "") -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": uid,
            "email": email,
            "iss": LOCAL_ISSUER,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.jwt_exp_minutes),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def _decode_local_token(self, token: str) -> Optional[str]:
        """uid for a locally issued token, None when the token was not issued here."""
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                issuer=LOCAL_ISSUER,
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired")
        except jwt.InvalidTokenError:
            return None
        return payload.get("sub")

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_current_user_profile(self, uid: str) -> Optional[UserProfile]:
        if not uid:
            return None
        record = self.students._dispatch("get_user", lambda store: store.get_user(uid))
        return UserProfile(**record) if record else None

    def _local_profile(self, uid: str) -> Optional[UserProfile]:
        """Profile for a locally issued token. Local accounts only exist in the mock store."""
        record = self.students.mock.get_user(uid) if uid else None
        return UserProfile(**record) if record else None

    def _write_profile(self, uid: str, request: SignUpRequest, extra: Optional[Dict[str, Any]] = None,
                       store=None) -> UserProfile:
        role = request.role.value if request.role else Role.REGULAR_ED.value
        is_parent = role == Role.PARENT.value
        now = now_iso()

        profile = {
            "uid": uid,
            "email": request.email.strip().lower(),
            "name": request.name or request.email.split("@")[0],
            "role": role,
            "school": "" if is_parent else (request.school or ""),
            "school_district": "" if is_parent else (request.school_district or ""),
            "school_id": HOME_SCHOOL_ID if is_parent else (request.school_id or ""),
            "is_active": True,
            "created_at": now,
            "last_login": now,
            **(extra or {}),
        }
        if store is not None:
            saved = store.upsert_user(profile)
        else:
            saved = self.students._dispatch("upsert_user", lambda s: s.upsert_user(profile))
        return UserProfile(**saved)

    # ------------------------------------------------------------------
    # Sign up / sign in / sign out
    # ------------------------------------------------------------------

    def sign_up(self, request: SignUpRequest) -> Dict[str, Any]:
        check = validate_password(request.password)
        if not check["valid"]:
            raise ValueError("; ".join(check["errors"]))

        auth = self.remote_auth
        if auth is not None:
            return self._remote_sign_up(auth, request)
        return self._local_sign_up(request)

    def _remote_sign_up(self, auth, request: SignUpRequest) -> Dict[str, Any]:
        try:
            response = auth.sign_up({"email": request.email, "password": request.password})
        except Exception as e:
            if "already" in str(e).lower():
                raise AccountExistsError("An account with this email already exists")
            logger.error(f"Supabase sign-up failed: {str(e)}")
            raise AuthenticationError(f"Sign-up failed: {str(e)}")

        if not response.user:
            raise AuthenticationError("Sign-up failed: no user returned")

        profile = self._write_profile(response.user.id, request)
        if response.session is None:
            # Email confirmation pending; sign in to obtain a session
            return self.sign_in(request.email, request.password)

        logger.info(f"Registered user {profile.uid} with role {profile.role}")
        return {"access_token": response.session.access_token, "user": profile}

    def _local_sign_up(self, request: SignUpRequest) -> Dict[str, Any]:
        mock = self.students.mock
        if mock.get_user_by_email(request.email):
            raise AccountExistsError("An account with this email already exists")

        uid = str(uuid.uuid4())
        password_hash = bcrypt.hashpw(request.password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        profile = self._write_profile(uid, request, extra={"password_hash": password_hash}, store=mock)

        logger.info(f"Registered local user {uid} with role {profile.role}")
        return {"access_token": self.issue_local_token(uid, profile.email), "user": profile}

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        auth = self.remote_auth
        if auth is not None:
            try:
                response = auth.sign_in_with_password({"email": email, "password": password})
            except Exception as e:
                logger.warning(f"Supabase sign-in failed for {email}: {str(e)}")
                raise AuthenticationError("Invalid email or password")
            uid = response.user.id
            token = response.session.access_token
            profile = self.get_current_user_profile(uid)
        else:
            record = self.students.mock.get_user_by_email(email)
            stored_hash = (record or {}).get("password_hash")
            if not stored_hash or not bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8")):
                raise AuthenticationError("Invalid email or password")
            uid = record["uid"]
            token = self.issue_local_token(uid, record.get("email", ""))
            profile = self._local_profile(uid)

        if profile is None or not profile.is_active:
            raise AuthenticationError("User profile not found")

        last_login = {"uid": uid, "last_login": now_iso()}
        if auth is not None:
            self.students._dispatch("update_last_login", lambda store: store.upsert_user(last_login))
        else:
            self.students.mock.upsert_user(last_login)
        return {"access_token": token, "user": profile}

    def sign_out(self, token: str) -> None:
        if not token:
            return
        try:
            if self._decode_local_token(token):
                return
        except AuthenticationError:
            return
        auth = self.remote_auth
        if auth is None:
            return
        try:
            auth.admin.sign_out(token)
        except Exception as e:
            logger.warning(f"Supabase sign-out failed: {str(e)}")

    # ------------------------------------------------------------------
    # Request authentication
    # ------------------------------------------------------------------

    def resolve_token(self, token: str) -> UserProfile:
        uid = self._decode_local_token(token)

        if uid is not None:
            profile = self._local_profile(uid)
        else:
            auth = self.remote_auth
            if auth is None:
                raise AuthenticationError("Invalid token")
            try:
                user_res = auth.get_user(token)
            except Exception as e:
                logger.error(f"Supabase token validation error: {str(e)}")
                if "timed out" in str(e).lower():
                    raise TimeoutError("Connection to authentication service timed out. Please try again later.")
                raise AuthenticationError(f"Authentication error: {str(e)}")
            if not user_res or not user_res.user:
                raise AuthenticationError("User not found")
            uid = user_res.user.id
            profile = self.get_current_user_profile(uid)

        if profile is None:
            logger.warning(f"No profile for authenticated user {uid}")
            raise AuthenticationError("User not found")
        if not profile.is_active:
            raise AuthenticationError("User account is disabled")
        return profile


@lru_cache(maxsize=1)
def get_identity_service() -> IdentityService:
    return IdentityService(get_student_service(), get_settings())
