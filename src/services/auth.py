"""Resolve a bearer credential to the caller's agency."""

from typing import Optional

from src.services.supabase_client import SupabaseClient, get_agency_id_for_user
from src.utils.errors import AuthenticationError
from src.utils.logging import get_structured_logger, mask_token

logger = get_structured_logger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an "Authorization: Bearer <token>" header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_user_id(access_token: str, client=None) -> str:
    """Validate the access token with Supabase auth and return the user ID."""
    async with SupabaseClient(client) as supabase:
        try:
            response = supabase.auth.get_user(access_token)
        except Exception as e:
            logger.warning("Access token rejected", token=mask_token(access_token), error=str(e))
            raise AuthenticationError("Unauthorized") from e

    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        raise AuthenticationError("Unauthorized")
    return user.id


async def resolve_agency(store, access_token: Optional[str], client=None) -> str:
    """
    Agency ID of the caller identified by access_token.

    Raises AuthenticationError when the token is missing or invalid, or when
    the user has no profile with an agency.
    """
    if not access_token:
        raise AuthenticationError("Unauthorized")

    user_id = await get_user_id(access_token, client=client)
    agency_id = await get_agency_id_for_user(store, user_id)
    if not agency_id:
        logger.warning("Authenticated user has no agency profile", user_id=user_id)
        raise AuthenticationError("Profile not found")
    return agency_id
