"""Bearer-token authentication consumed by the API.

Tokens are issued by the login collaborator; this module only needs to
verify them (and to mint them for tooling and tests).

Env vars:
- JWT_SECRET (required in prod; default for dev)
- JWT_EXPIRES_MIN (default 7 days)
- VAKEEL_PUBLIC_MODE: when true, anonymous callers are accepted as a guest
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import os
import logging
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel


logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)

GUEST_USER_ID = "guest"
WEEK_MINUTES = 60 * 24 * 7
PRODUCTION_ENVS = ("prod", "production")


@dataclass
class JwtConfig:
    secret: str
    algorithm: str = "HS256"
    expires_min: int = WEEK_MINUTES

    @staticmethod
    def from_env() -> "JwtConfig":
        return JwtConfig(
            secret=os.getenv("JWT_SECRET") or "dev-secret-change-me",
            expires_min=int(os.getenv("JWT_EXPIRES_MIN", str(WEEK_MINUTES))),
        )


class User(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: str = ""

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "User":
        return cls(user_id=str(claims["sub"]), email=claims.get("email"), name=claims.get("name") or "")

    def to_claims(self) -> Dict[str, Any]:
        return {"sub": self.user_id, "email": self.email, "name": self.name}


def guest_user() -> User:
    return User(user_id=GUEST_USER_ID, name="Guest")


def create_access_token(user: User, cfg: Optional[JwtConfig] = None) -> str:
    cfg = cfg or JwtConfig.from_env()
    issued = datetime.now(timezone.utc)
    claims = user.to_claims()
    claims["iat"] = int(issued.timestamp())
    claims["exp"] = int((issued + timedelta(minutes=cfg.expires_min)).timestamp())
    return jwt.encode(claims, cfg.secret, algorithm=cfg.algorithm)


def decode_token(token: str, cfg: Optional[JwtConfig] = None) -> User:
    """Verify ``token`` and return its user; any failure is a 401."""
    cfg = cfg or JwtConfig.from_env()
    try:
        return User.from_claims(jwt.decode(token, cfg.secret, algorithms=[cfg.algorithm]))
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except (jwt.InvalidTokenError, KeyError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def _public_mode_enabled() -> bool:
    """Explicit VAKEEL_PUBLIC_MODE wins; otherwise public everywhere except production."""
    flag = os.getenv("VAKEEL_PUBLIC_MODE")
    if flag is not None:
        return flag.lower() in ("1", "true", "yes")
    env_name = os.getenv("VAKEEL_ENV") or os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development"
    return env_name.lower() not in PRODUCTION_ENVS


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> User:
    """Resolve the caller from the bearer token, or a guest in public mode."""
    public_mode = _public_mode_enabled()
    if creds is None or (creds.scheme or "").lower() != "bearer":
        if public_mode:
            return guest_user()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")
    try:
        return decode_token(creds.credentials)
    except HTTPException:
        if not public_mode:
            raise
        logger.debug("Ignoring invalid bearer token in public mode")
        return guest_user()
