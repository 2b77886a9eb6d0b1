"""
Authentication strategies.

``Authenticator`` looks at the shape of the presented credentials and hands
them to the matching strategy: passwords are checked with bcrypt, bearer
tokens are verified JWTs, and API keys are compared by SHA-256 digest.
"""

import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import bcrypt
import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from ...config import settings
from ...exceptions import AccessDeniedException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthResult:
    user_id: str
    method: str


@dataclass(frozen=True)
class PasswordCredentials:
    username: str
    password: str


@dataclass(frozen=True)
class TokenCredentials:
    token: str


@dataclass(frozen=True)
class ApiKeyCredentials:
    api_key: str


class AuthStrategy(ABC):
    method: str = ""
    credential_type: type = object

    @abstractmethod
    def authenticate(self, credentials: Any) -> AuthResult: ...


# ==================== PASSWORD ====================


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.error("Password verification failed", error=str(e))
        return False


class PasswordStrategy(AuthStrategy):
    method = "password"
    credential_type = PasswordCredentials

    def __init__(self) -> None:
        self._users: Dict[str, str] = {}

    def register(self, username: str, password: str) -> None:
        self._users[username] = hash_password(password)

    def authenticate(self, credentials: PasswordCredentials) -> AuthResult:
        hashed = self._users.get(credentials.username)
        # Unknown users and wrong passwords fail the same way.
        if hashed is None or not verify_password(credentials.password, hashed):
            raise AccessDeniedException(credentials.username, action="login")
        return AuthResult(credentials.username, self.method)


# ==================== JWT ====================


class JwtStrategy(AuthStrategy):
    method = "jwt"
    credential_type = TokenCredentials

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expires_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.secret = secret or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.expires_minutes = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRATION_MINUTES
        self._clock = clock

    def issue(self, user_id: str, claims: Optional[Dict[str, Any]] = None) -> str:
        now = self._clock()
        payload = {
            "sub": user_id,
            "type": "access",
            "iat": now,
            "exp": now + timedelta(minutes=self.expires_minutes),
        }
        if claims:
            payload.update(claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        return jwt.decode(token, self.secret, algorithms=[self.algorithm], options={"require": ["exp", "sub"]})

    def authenticate(self, credentials: TokenCredentials) -> AuthResult:
        try:
            payload = self.decode(credentials.token)
        except ExpiredSignatureError:
            logger.warning("Token expired")
            raise AccessDeniedException("token", action="expired token")
        except InvalidTokenError as e:
            logger.warning("Invalid token", error=str(e))
            raise AccessDeniedException("token", action="invalid token")
        return AuthResult(payload["sub"], self.method)


# ==================== API KEY ====================


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


class ApiKeyStrategy(AuthStrategy):
    """Keys are stored only as SHA-256 digests and compared in constant time."""

    method = "api_key"
    credential_type = ApiKeyCredentials

    def __init__(self) -> None:
        self._keys: Dict[str, str] = {}

    def create_key(self, user_id: str) -> str:
        api_key = f"pk_{secrets.token_urlsafe(24)}"
        self._keys[hash_api_key(api_key)] = user_id
        return api_key

    def revoke(self, api_key: str) -> bool:
        return self._keys.pop(hash_api_key(api_key), None) is not None

    def authenticate(self, credentials: ApiKeyCredentials) -> AuthResult:
        presented = hash_api_key(credentials.api_key)
        for digest, user_id in self._keys.items():
            if hmac.compare_digest(digest, presented):
                return AuthResult(user_id, self.method)
        raise AccessDeniedException("api_key", action="unknown api key")


# ==================== CONTEXT ====================


class Authenticator:
    def __init__(self, *strategies: AuthStrategy):
        self._strategies: List[AuthStrategy] = list(strategies)

    def add_strategy(self, strategy: AuthStrategy) -> None:
        self._strategies.append(strategy)

    def strategy_for(self, credentials: Any) -> AuthStrategy:
        for strategy in self._strategies:
            if isinstance(credentials, strategy.credential_type):
                return strategy
        raise UnsupportedTypeException(
            "credentials", type(credentials).__name__, [s.credential_type.__name__ for s in self._strategies]
        )

    def authenticate(self, credentials: Any) -> AuthResult:
        strategy = self.strategy_for(credentials)
        try:
            result = strategy.authenticate(credentials)
        except AccessDeniedException:
            logger.warning("Authentication failed", method=strategy.method)
            raise
        logger.info("Authenticated", user_id=result.user_id, method=result.method)
        return result


@demo(
    "strategy.authentication",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Password, JWT and API key authentication behind one interface",
)
def run_demo() -> None:
    passwords, tokens, keys = PasswordStrategy(), JwtStrategy(), ApiKeyStrategy()
    passwords.register("alice", "correct horse battery staple")
    api_key = keys.create_key("ci-bot")
    auth = Authenticator(passwords, tokens, keys)

    attempts = [
        ("password", PasswordCredentials("alice", "correct horse battery staple")),
        ("wrong password", PasswordCredentials("alice", "hunter2")),
        ("jwt", TokenCredentials(tokens.issue("alice", {"role": "admin"}))),
        ("tampered jwt", TokenCredentials(tokens.issue("alice") + "x")),
        ("api key", ApiKeyCredentials(api_key)),
        ("unknown api key", ApiKeyCredentials("pk_nope")),
    ]
    for label, credentials in attempts:
        try:
            result = auth.authenticate(credentials)
            print(f"  {label:<16} -> {result.user_id} via {result.method}")
        except AccessDeniedException as e:
            print(f"  {label:<16} -> denied ({e.message})")


if __name__ == "__main__":
    run_module(run_demo)
