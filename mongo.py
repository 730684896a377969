# mongo.py
import os
from dotenv import load_dotenv
load_dotenv()

from pymongo import MongoClient, ASCENDING

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "text_credits")

client = MongoClient(MONGO_URL, tz_aware=False)
db = client[MONGO_DB]

# Collections
credits_collection = db["userCredits"]


def ensure_indexes():
    # -------------------
    # Ledgers
    # -------------------
    # webhooks resolve ledgers by the payment provider's customer id
    credits_collection.create_index(
        [("subscription.customerRef", ASCENDING)],
        sparse=True
    )
    credits_collection.create_index(
        [("createdAt", ASCENDING)]
    )
