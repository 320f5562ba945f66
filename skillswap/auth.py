from dataclasses import dataclass
from typing import Optional
import enum
import logging
import re
import threading

from supabase import AuthError

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3

ALREADY_REGISTERED = "An account with this email already exists. Please sign in instead."
WEAK_PASSWORD = "Password is too weak. Please choose a stronger password."
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."

ALREADY_REGISTERED_CODES = {"user_already_exists", "email_exists"}
WEAK_PASSWORD_CODES = {"weak_password"}


class AuthEvent(enum.Enum):
    signed_up = "signed_up"
    signed_in = "signed_in"
    signed_out = "signed_out"


@dataclass
class AuthResult:
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None


# ------------------ VALIDATION ------------------

def validate_signup(email, password, username):
    """
    Local checks before anything is sent to the auth service.
    Returns an error message or None.
    """
    if not email or not password or not username:
        return "All fields are required."

    if len(password) < MIN_PASSWORD_LENGTH:
        return "Password must be at least 6 characters long."

    if len(username) < MIN_USERNAME_LENGTH:
        return "Username must be at least 3 characters long."

    if not USERNAME_PATTERN.match(username):
        return "Username can only contain letters, numbers, and underscores."

    return None


def validate_login(email, password):
    if not email or not password:
        return "Email and password are required."
    return None


def describe_auth_error(error):
    """
    User-facing text for an auth service error.
    The structured error code wins when the service sends one; otherwise
    the message text is matched, and unknown errors pass through verbatim.
    """
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    lowered = message.lower()

    if code in ALREADY_REGISTERED_CODES or "already registered" in lowered:
        return ALREADY_REGISTERED
    if code in WEAK_PASSWORD_CODES or "weak password" in lowered:
        return WEAK_PASSWORD
    return message


# ------------------ SESSION CONTEXT ------------------

class AuthContext:
    """
    Wraps the Supabase auth client for the lifetime of the process.

    Built once by create_app() and shared through app.extensions["auth"].
    Subscribers are told about every successful sign up, sign in and sign out.
    """

    def __init__(self, client):
        self._client = client
        self._listeners = []
        self._lock = threading.Lock()

    def subscribe(self, listener):
        """listener(event, user_id). Returns a callable that unsubscribes."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event, user_id):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, user_id)
            except Exception:
                logger.exception("Auth listener failed for %s", event.value)

    def sign_up(self, email, password, username):
        problem = validate_signup(email, password, username)
        if problem:
            return AuthResult(error=problem)

        try:
            response = self._client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"username": username}},
            })
        except AuthError as e:
            logger.warning("Sign up failed for %s: %s", email, e)
            return AuthResult(error=describe_auth_error(e))
        except Exception:
            logger.exception("Unexpected sign up error for %s", email)
            return AuthResult(error=UNEXPECTED_ERROR)

        user = response.user
        user_id = user.id if user else None
        self._notify(AuthEvent.signed_up, user_id)
        return AuthResult(user_id=user_id, email=email)

    def sign_in(self, email, password):
        problem = validate_login(email, password)
        if problem:
            return AuthResult(error=problem)

        try:
            response = self._client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except AuthError as e:
            logger.warning("Sign in failed for %s: %s", email, e)
            return AuthResult(error=describe_auth_error(e))
        except Exception:
            logger.exception("Unexpected sign in error for %s", email)
            return AuthResult(error=UNEXPECTED_ERROR)

        user = response.user
        session = response.session
        self._notify(AuthEvent.signed_in, user.id)
        return AuthResult(
            user_id=user.id,
            email=user.email or email,
            access_token=session.access_token if session else None,
        )

    def sign_out(self, user_id=None, access_token=None):
        """
        End the session identified by access_token.

        The client is shared by every browser, so its own stored session may
        belong to someone else; the token from the caller's Flask session is
        revoked instead. Without a token there is nothing to revoke remotely.
        """
        if not access_token:
            logger.info("No access token for %s, clearing local session only", user_id)
            self._notify(AuthEvent.signed_out, user_id)
            return AuthResult(user_id=user_id)

        try:
            self._client.auth.admin.sign_out(access_token, "local")
        except AuthError:
            # the local session is cleared either way
            logger.exception("Error signing out")
            return AuthResult(user_id=user_id, error="Sign out failed.")

        self._notify(AuthEvent.signed_out, user_id)
        return AuthResult(user_id=user_id)

    def close(self):
        with self._lock:
            self._listeners.clear()
