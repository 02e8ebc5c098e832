"""JWT authentication and role checks for the HTTP API."""

from security.auth import (
    Role,
    TokenData,
    JWTConfig,
    init_jwt_config,
    get_jwt_config,
    verify_token,
    create_token,
    get_current_user,
    require_role,
    require_admin,
    require_ops,
    require_viewer,
)

__all__ = [
    "Role",
    "TokenData",
    "JWTConfig",
    "init_jwt_config",
    "get_jwt_config",
    "verify_token",
    "create_token",
    "get_current_user",
    "require_role",
    "require_admin",
    "require_ops",
    "require_viewer",
]
