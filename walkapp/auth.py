import base64
import json
import logging
import time

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

ROLES = ("admin", "walker", "owner")

# Cache for Google's public keys
_cached_keys = None


async def get_google_public_keys(refresh: bool = False):
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL)
        if response.status_code == 200:
            _cached_keys = response.json()
            logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
            return _cached_keys
        logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


def _b64decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token: RS256 signature against Google's certificates,
    then audience, issuer and expiry claims.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        raise HTTPException(status_code=401, detail="Invalid token header")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, refreshing")
        public_keys = await get_google_public_keys(refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
    try:
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    payload = json.loads(_b64decode(payload_b64))

    if payload.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if payload.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if payload.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    if payload.get("iat", 0) > now + 60:  # Allow 60 seconds clock skew
        raise HTTPException(status_code=401, detail="Invalid token")

    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token, creating an owner account on first sign-in"""
    decoded_token = await verify_firebase_token(credentials.credentials)

    firebase_uid = decoded_token.get("sub") or decoded_token.get("user_id")
    if not firebase_uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if user:
        return user

    email = decoded_token.get("email") or f"{firebase_uid}@users.invalid"
    logger.info(f"🆕 Creating new user: {email}")
    user = User(
        firebase_uid=firebase_uid,
        email=email,
        full_name=decoded_token.get("name", ""),
        role="owner",
    )
    db.add(user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user


def require_roles(*roles: str):
    """Dependency factory restricting an endpoint to the given roles"""
    unknown = set(roles) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {sorted(unknown)}")

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.id} ({user.role}) denied; requires {roles}")
            raise HTTPException(status_code=403, detail="Not authorized")
        return user

    return dependency
