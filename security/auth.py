"""
JWT authentication and RBAC for API endpoints.

Implements RS256 JWT verification with role-based access control. Admins send
invitations, ops manage IP exclusions, viewers read link state.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from enum import Enum
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from core.config import JWTSettings
from core.errors import AuthenticationError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """
    API roles, ordered.

    Each role includes the permissions of the roles below it:
    viewer reads link state and IP rules, ops also blocks/unblocks IPs,
    admin also sends access invitations.
    """

    ADMIN = "admin"
    OPS = "ops"
    VIEWER = "viewer"


ROLE_RANKS: Dict[Role, int] = {
    Role.VIEWER: 1,
    Role.OPS: 2,
    Role.ADMIN: 3,
}

REQUIRED_CLAIMS = ["sub", "role", "aud", "iss", "exp", "iat"]


class TokenData(BaseModel):
    """Decoded JWT token data."""

    sub: str  # Subject (user ID)
    role: Role
    aud: str
    iss: str
    exp: datetime
    iat: datetime

    def has_role(self, minimum: Role) -> bool:
        return ROLE_RANKS[self.role] >= ROLE_RANKS[minimum]


def _read_key(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    key_path = Path(path)
    if not key_path.exists():
        return None
    return key_path.read_text()


class JWTConfig:
    """Keys and claims used to verify (and in development, sign) tokens."""

    def __init__(self, settings: JWTSettings, algorithm: str = "RS256"):
        """
        Initialize JWT configuration.

        Args:
            settings: Key paths and expected claims
            algorithm: JWT algorithm (default RS256)
        """
        self.algorithm = algorithm
        self.audience = settings.audience
        self.issuer = settings.issuer
        self.expiry_minutes = settings.expiry_minutes

        self.public_key = _read_key(settings.public_key_path)
        self.private_key = _read_key(settings.private_key_path)

        if self.public_key is None:
            logger.warning(
                f"Public key not found at {settings.public_key_path}, "
                "generating an ephemeral development key pair"
            )
            self.public_key, self.private_key = self._generate_dev_keys()

    @staticmethod
    def _generate_dev_keys():
        """Generate an in-memory RSA key pair. Never used in production."""
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()
        return public_pem, private_pem


# Set once during application startup
_jwt_config: Optional[JWTConfig] = None


def init_jwt_config(config: JWTConfig) -> None:
    """Install the JWT configuration used by the request dependencies."""
    global _jwt_config
    _jwt_config = config
    logger.info("JWT configuration initialized")


def get_jwt_config() -> JWTConfig:
    """Get JWT configuration."""
    if _jwt_config is None:
        raise RuntimeError("JWT configuration not initialized")
    return _jwt_config


security = HTTPBearer()


def verify_token(token: str, config: Optional[JWTConfig] = None) -> TokenData:
    """
    Verify and decode JWT token.

    Args:
        token: JWT token string
        config: JWT configuration (uses the installed one if not provided)

    Returns:
        Decoded token data

    Raises:
        AuthenticationError: If token is invalid
    """
    config = config or get_jwt_config()

    try:
        claims = jwt.decode(
            token,
            config.public_key,
            algorithms=[config.algorithm],
            audience=config.audience,
            issuer=config.issuer,
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidAudienceError:
        raise AuthenticationError("Invalid token audience")
    except jwt.InvalidIssuerError:
        raise AuthenticationError("Invalid token issuer")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {e}")

    try:
        role = Role(claims["role"])
    except (KeyError, ValueError):
        raise AuthenticationError(f"Unknown role claim: {claims.get('role')!r}")

    return TokenData(
        sub=claims["sub"],
        role=role,
        aud=claims["aud"],
        iss=claims["iss"],
        exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
    )


def create_token(
    user_id: str,
    role: Role,
    config: Optional[JWTConfig] = None
) -> str:
    """
    Create a new JWT token (for testing/development).

    Args:
        user_id: User identifier
        role: User role
        config: JWT configuration (uses the installed one if not provided)

    Returns:
        JWT token string
    """
    config = config or get_jwt_config()

    if not config.private_key:
        raise RuntimeError("Private key not configured for token creation")

    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": Role(role).value,
        "aud": config.audience,
        "iss": config.issuer,
        "iat": now,
        "exp": now + timedelta(minutes=config.expiry_minutes),
    }
    return jwt.encode(payload, config.private_key, algorithm=config.algorithm)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenData:
    """
    FastAPI dependency to get current authenticated user.

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return verify_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(minimum: Role):
    """
    Create a dependency that admits the given role and every role above it.

    Args:
        minimum: Lowest role allowed through

    Returns:
        FastAPI dependency function
    """
    async def role_checker(
        token_data: TokenData = Depends(get_current_user)
    ) -> TokenData:
        if not token_data.has_role(minimum):
            logger.warning(
                f"Denied {token_data.sub} ({token_data.role.value}): "
                f"{minimum.value} role required"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {minimum.value} or higher",
            )
        return token_data

    return role_checker


# Invitations
require_admin = require_role(Role.ADMIN)
# IP block changes
require_ops = require_role(Role.OPS)
# Read-only link and rule lookups
require_viewer = require_role(Role.VIEWER)
