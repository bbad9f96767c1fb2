"""Guest user bookkeeping."""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import database
from database import Store, serialize
from errors import NotFound
from logging_setup import get_logger
from schemas import User

log = get_logger("rovel.users")


def create_guest(store: Store, user_agent: Optional[str] = None) -> Dict[str, Any]:
    guest_id = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    user = User(
        id=guest_id,
        name=f"Guest-{guest_id[:8]}",
        role="guest",
        created_at=now,
        last_seen=now,
        user_agent=user_agent or "Unknown",
    )
    store.insert(database.USERS, user)
    log.info("Registered guest %s", user.id)
    return user.model_dump()


def list_users(store: Store) -> List[Dict[str, Any]]:
    return [serialize(d) for d in store.find(database.USERS)]


def delete_user(store: Store, user_id: str) -> None:
    if not store.delete_one(database.USERS, {"id": user_id}):
        raise NotFound("User not found")


def touch(store: Store, user_id: str) -> bool:
    return bool(store.update_one(database.USERS, {"id": user_id}, {"last_seen": datetime.now(timezone.utc)}))
