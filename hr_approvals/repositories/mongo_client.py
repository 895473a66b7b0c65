"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            tz_aware=True,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def use_database(database: Optional[Database]) -> None:
    """Install an already-open database handle (scripts, tests)"""
    global _database
    _database = database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Validation workflows (steps are embedded)
    workflows = db["validation_workflows"]
    workflows.create_index("workflow_id", unique=True)
    workflows.create_index([("trigger_type", ASCENDING), ("is_active", ASCENDING)])
    workflows.create_index("updated_at")

    # HR requests
    requests = db["hr_requests"]
    requests.create_index("request_id", unique=True)
    requests.create_index([("requester.user_id", ASCENDING), ("submitted_at", DESCENDING)])
    requests.create_index([("status.kind", ASCENDING), ("request_type", ASCENDING)])
    requests.create_index("workflow_id")
    requests.create_index("history.actor.user_id")

    # Delegations
    delegations = db["delegations"]
    delegations.create_index("delegation_id", unique=True)
    delegations.create_index([("delegator_id", ASCENDING), ("is_active", ASCENDING)])
    delegations.create_index([("delegate_id", ASCENDING), ("is_active", ASCENDING)])

    # Employee directory
    employees = db["employees"]
    employees.create_index("employee_id", unique=True)
    employees.create_index("roles")
    employees.create_index("manager_id")

    # Audit events
    audit_events = db["audit_events"]
    audit_events.create_index("audit_event_id", unique=True)
    audit_events.create_index([("entity_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_events.create_index("correlation_id")

    # In-app notifications
    notifications = db["inapp_notifications"]
    notifications.create_index("notification_id", unique=True)
    notifications.create_index([("recipient_id", ASCENDING), ("created_at", DESCENDING)])
    notifications.create_index([("recipient_id", ASCENDING), ("is_read", ASCENDING)])

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
