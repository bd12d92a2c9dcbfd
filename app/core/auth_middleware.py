"""Authentication middleware for FastAPI."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.logging import get_logger
from app.core.provisioning_rules import ProfileRole
from app.db.user_profiles import get_user_profile

logger = get_logger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


class AuthContext:
    """Context object containing authenticated user info."""

    def __init__(
        self,
        user_id: str,
        email: Optional[str],
        token: str,
        role: ProfileRole = ProfileRole.USER,
        active: bool = True,
    ):
        self.user_id = user_id
        self.email = email
        self.token = token
        self.role = role
        self.active = active

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN

    @property
    def has_pro_access(self) -> bool:
        """Pro tools are open to pro users and admins."""
        return self.role in (ProfileRole.PRO, ProfileRole.ADMIN)


def _profile_role(profile: Optional[dict]) -> ProfileRole:
    try:
        return ProfileRole((profile or {}).get("role") or ProfileRole.USER.value)
    except ValueError:
        return ProfileRole.USER


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Extract and validate the current user from a Supabase JWT.

    Role and active flag come from user_profiles, which the provisioning
    webhooks keep in sync with billing state. A user without a profile row is
    treated as an active 'user'.

    Returns None if no valid auth is present (for optional auth endpoints).
    """
    if not credentials:
        return None

    token = credentials.credentials

    try:
        from app.db.supabase_client import get_supabase

        client = get_supabase()

        # Validates the JWT signature and expiration
        auth_response = client.auth.get_user(token)
        if not auth_response or not auth_response.user:
            return None

        user_id = str(auth_response.user.id)
        profile = get_user_profile(user_id)

        return AuthContext(
            user_id=user_id,
            email=auth_response.user.email,
            token=token,
            role=_profile_role(profile),
            active=bool(profile.get("active", True)) if profile else True,
        )

    except Exception as e:
        logger.warning(f"Auth error: {e}")
        return None


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require an authenticated, active user. 401 if missing, 403 if deactivated."""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not auth.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return auth


async def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the user to be an admin."""
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return auth
