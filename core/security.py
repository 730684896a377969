import logging
import re
import time

import requests
from jose import jwt, JWTError

from core.config import FIREBASE_PROJECT_ID
from core.errors import Unauthenticated

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/"
    "securetoken@system.gserviceaccount.com"
)
TOKEN_ALGO = "RS256"
DEFAULT_CERT_TTL = 3600

_cert_cache = {"certs": {}, "expires_at": 0.0}


def _max_age(cache_control: str) -> int:
    match = re.search(r"max-age=(\d+)", cache_control or "")
    return int(match.group(1)) if match else DEFAULT_CERT_TTL


def get_signing_certs(force: bool = False) -> dict:
    """
    Public x509 certs the identity provider signs ID tokens with, keyed by kid.
    Cached for as long as the response's Cache-Control allows.
    """
    now = time.time()
    if not force and _cert_cache["certs"] and now < _cert_cache["expires_at"]:
        return _cert_cache["certs"]

    res = requests.get(GOOGLE_CERTS_URL, timeout=10)
    res.raise_for_status()

    _cert_cache["certs"] = res.json()
    _cert_cache["expires_at"] = now + _max_age(res.headers.get("Cache-Control"))
    return _cert_cache["certs"]


def verify_id_token(token: str) -> dict:
    """
    Verify an identity-provider ID token and return the caller's identity:
    {"uid", "email", "name"}.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("[Auth] FIREBASE_PROJECT_ID is not configured")
        raise Unauthenticated("Authentication is not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError:
        raise Unauthenticated("Invalid token")

    try:
        certs = get_signing_certs()
        if kid not in certs:
            # keys rotate; refetch once before giving up
            certs = get_signing_certs(force=True)
    except requests.RequestException as e:
        logger.error(f"[Auth] Could not fetch signing certs: {e}")
        raise Unauthenticated("Could not verify token")

    cert = certs.get(kid)
    if not cert:
        raise Unauthenticated("Invalid token")

    try:
        claims = jwt.decode(
            token,
            cert,
            algorithms=[TOKEN_ALGO],
            audience=FIREBASE_PROJECT_ID,
            issuer=f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}",
            options={"verify_at_hash": False},
        )
    except JWTError as e:
        logger.info(f"[Auth] Token rejected: {e}")
        raise Unauthenticated("Invalid token")

    uid = claims.get("sub")
    if not uid:
        raise Unauthenticated("Invalid token")

    return {
        "uid": uid,
        "email": claims.get("email"),
        "name": claims.get("name"),
    }
