import logging
from fastapi import APIRouter
from datetime import datetime
from pymongo.errors import PyMongoError
from mongo import client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

# ------------------------------------
# LIVENESS
# ------------------------------------
@router.get("/wake")
def wake_up():
    return {
        "status": "awake",
        "timestamp": datetime.utcnow().isoformat()
    }


# ------------------------------------
# READINESS CHECK
# ------------------------------------
@router.get("/ready")
def readiness_check():
    """
    Ready once the ledger store answers a ping.
    """

    mongo_ok = False

    try:
        client.admin.command("ping")
        mongo_ok = True
    except PyMongoError as e:
        logger.warning(f"[Health] MongoDB ping failed: {e}")

    return {
        "ready": mongo_ok,
        "mongo": mongo_ok,
        "timestamp": datetime.utcnow().isoformat()
    }
