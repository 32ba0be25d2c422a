"""Authorization gate for inbound requests.

Public routes pass straight through. Every other request must carry a
Cognito-issued RS256 bearer token, verified against the pool's signing keys
before any handler runs.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import jwt
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .cache import JWKSCache, JWKSFetchError
from .config import get_settings
from .exceptions import (
    AuthenticationException, InvalidHeaderFormatException, MissingTokenException,
    TokenVerificationFailedException
)

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"

PUBLIC_ROUTES = frozenset({
    ("GET", "/"),
    ("GET", "/health"),
    ("GET", "/ping"),
    ("GET", "/watchlists/public"),
})


@dataclass
class AuthenticatedUser:
    sub: str
    email: Optional[str] = None
    username: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthenticatedUser":
        return cls(
            sub=claims["sub"],
            email=claims.get("email"),
            username=claims.get("cognito:username") or claims.get("username"),
            claims=claims,
        )


def is_public_route(path: str, method: str) -> bool:
    """Exact match against the allow-list; no prefix matching"""
    return (method.upper(), path) in PUBLIC_ROUTES


def extract_bearer_token(headers: Mapping[str, str]) -> str:
    authorization = headers.get("authorization") or headers.get("Authorization")
    if not authorization or not authorization.strip():
        raise MissingTokenException()
    parts = authorization.strip().split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise InvalidHeaderFormatException()
    return parts[1]


class TokenVerifier:
    """Verifies signature, issuer, audience and expiry of pool tokens"""

    def __init__(self, jwks_cache: JWKSCache, issuer: Optional[str] = None, client_id: Optional[str] = None):
        settings = get_settings()
        self.jwks_cache = jwks_cache
        if issuer is None:
            issuer = settings.COGNITO_ISSUER if settings.USER_POOL_ID else ""
        self.issuer = issuer
        self.client_id = settings.USER_POOL_CLIENT_ID if client_id is None else client_id
        if not self.issuer or not self.client_id:
            logger.error("USER_POOL_ID or USER_POOL_CLIENT_ID is not set; every token will be rejected")

    def _signing_key(self, token: str):
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise TokenVerificationFailedException(f"Unreadable token header: {str(e)}")
        kid = header.get("kid")
        if not kid:
            raise TokenVerificationFailedException("Token header has no kid")
        if header.get("alg") != ALGORITHM:
            raise TokenVerificationFailedException(f"Unexpected algorithm {header.get('alg')}")
        try:
            jwk = self.jwks_cache.get_key(kid)
        except JWKSFetchError as e:
            raise TokenVerificationFailedException(str(e))
        if jwk is None:
            raise TokenVerificationFailedException(f"No signing key for kid {kid}")
        try:
            return jwt.PyJWK(jwk, algorithm=ALGORITHM).key
        except jwt.PyJWTError as e:
            raise TokenVerificationFailedException(f"Unusable signing key {kid}: {str(e)}")

    def _check_audience(self, claims: Dict[str, Any]) -> None:
        # ID tokens carry aud, access tokens carry client_id
        audience = claims.get("aud", claims.get("client_id"))
        audiences = audience if isinstance(audience, list) else [audience]
        if not self.client_id or self.client_id not in audiences:
            raise TokenVerificationFailedException(f"Audience {audience!r} does not match client")

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the verified claims or raise TokenVerificationFailedException"""
        if not self.issuer or not self.client_id:
            raise TokenVerificationFailedException("Verifier has no user pool or client configured")
        key = self._signing_key(token)
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "iss", "sub"], "verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationFailedException("Token expired")
        except jwt.InvalidIssuerError:
            raise TokenVerificationFailedException("Issuer mismatch")
        except jwt.PyJWTError as e:
            raise TokenVerificationFailedException(f"Token rejected: {str(e)}")
        self._check_audience(claims)
        return claims


class AuthorizationGate:
    """Decides Authenticated or Rejected for each request"""

    def __init__(self, verifier: TokenVerifier):
        self.verifier = verifier

    def authorize(self, method: str, path: str, headers: Mapping[str, str]) -> Optional[AuthenticatedUser]:
        """None for public routes, the caller for protected ones"""
        if is_public_route(path, method):
            return None
        token = extract_bearer_token(headers)
        return AuthenticatedUser.from_claims(self.verifier.verify(token))


def build_authorization_gate() -> AuthorizationGate:
    return AuthorizationGate(TokenVerifier(JWKSCache()))


async def authorization_middleware(request: Request, call_next):
    """Runs the gate before routing; rejections never reach a handler"""
    gate: AuthorizationGate = request.app.state.auth_gate
    try:
        user = await run_in_threadpool(gate.authorize, request.method, request.url.path, request.headers)
    except AuthenticationException as e:
        logger.warning(f"Rejected {request.method} {request.url.path}: {e.reason}")
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    request.state.user = user
    return await call_next(request)


def get_current_user(request: Request) -> AuthenticatedUser:
    """Dependency returning the caller authenticated by the middleware"""
    user = getattr(request.state, "user", None)
    if user is None:
        raise MissingTokenException("Route requires a caller but none was authenticated")
    return user
