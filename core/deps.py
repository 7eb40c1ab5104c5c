import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

from core import config
from core.auth_context import AuthContext
from core.exceptions import Unauthorized
from core.firebase import get_firestore_client, verify_id_token

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


# Builds the caller's AuthContext from a Firebase ID token and their Firestore profile
async def get_auth_context(request: Request) -> AuthContext:
    # 1) Extract & Analyze Authorization Header
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise CREDENTIALS_EXCEPTION
    token = auth_header.split(" ", 1)[1]

    # 2) Verify Firebase Token
    try:
        decoded = verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_exceptions.FirebaseError):
        raise CREDENTIALS_EXCEPTION
    uid = decoded.get("uid")
    if not uid:
        raise CREDENTIALS_EXCEPTION

    # 3) Fetch the Firestore user profile
    try:
        snapshot = get_firestore_client().collection("users").document(uid).get()
    except (firebase_exceptions.FirebaseError, google_exceptions.GoogleAPIError) as e:
        logger.error("Firestore error fetching profile for %s: %s", uid, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not fetch user profile.",
        )
    if not snapshot.exists:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found in Firestore",
        )
    profile = snapshot.to_dict() or {}

    return AuthContext(
        employee_id=uid,
        company_id=profile.get("companyId") or None,
        is_admin=profile.get("role", "") in config.ADMIN_ROLES,
    )


# Admin Role Check Dependency
async def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    if not auth.is_admin:
        raise Unauthorized()
    return auth
