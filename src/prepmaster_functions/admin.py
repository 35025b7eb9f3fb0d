"""User bootstrap: default users and the IT admin account."""

import logging
from datetime import datetime
from enum import StrEnum

from prepmaster_shared import ROLE_DEFAULT_PERMISSIONS, Role, User

from .store import FirestoreStore

logger = logging.getLogger(__name__)

ADMIN_PIN = "0000"
ADMIN_NAME = "IT Administrator"


class AdminReconciliation(StrEnum):
    PRESENT = "present"
    NORMALIZED = "normalized"
    PROMOTED = "promoted"
    CREATED = "created"


def _permissions(role: Role) -> list[str]:
    return [p.value for p in ROLE_DEFAULT_PERMISSIONS[role]]


def ensure_it_admin(store: FirestoreStore, now: datetime) -> AdminReconciliation:
    """Make sure an IT admin with PIN 0000 exists.

    Prefers fixing an existing account over creating a new one: first an
    IT admin with another PIN, then any user holding PIN 0000.
    """
    users: list[tuple[str, User]] = []
    for loaded in store.get_users():
        if loaded.model is None:
            logger.warning("Ignoring user %s: %s", loaded.doc_id, loaded.error)
            continue
        users.append((loaded.doc_id, loaded.model))

    if any(u.role == Role.IT_ADMIN and u.pin == ADMIN_PIN for _, u in users):
        return AdminReconciliation.PRESENT

    admin_fields = {
        "name": ADMIN_NAME,
        "permissions": _permissions(Role.IT_ADMIN),
        "active": True,
    }

    admins = [doc_id for doc_id, u in users if u.role == Role.IT_ADMIN]
    if admins:
        store.update_user(admins[0], {**admin_fields, "pin": ADMIN_PIN})
        logger.info("Reset PIN of IT admin %s", admins[0])
        return AdminReconciliation.NORMALIZED

    holders = [doc_id for doc_id, u in users if u.pin == ADMIN_PIN]
    if holders:
        store.update_user(holders[0], {**admin_fields, "role": Role.IT_ADMIN.value})
        logger.info("Promoted user %s to IT admin", holders[0])
        return AdminReconciliation.PROMOTED

    ids = {u.id for _, u in users}
    new_id = max(ids) + 1 if 1 in ids else 1
    doc_id = store.add_user(
        User(
            id=new_id,
            name=ADMIN_NAME,
            pin=ADMIN_PIN,
            role=Role.IT_ADMIN,
            permissions=_permissions(Role.IT_ADMIN),
            created_at=now,
        )
    )
    logger.info("Created IT admin %s with id %d", doc_id, new_id)
    return AdminReconciliation.CREATED


def default_users(now: datetime) -> list[User]:
    return [
        User(
            id=1,
            name=ADMIN_NAME,
            pin=ADMIN_PIN,
            role=Role.IT_ADMIN,
            permissions=_permissions(Role.IT_ADMIN),
            created_at=now,
        ),
        User(id=2, name="John Doe", pin="1234", role=Role.EMPLOYEE, created_at=now),
        User(
            id=3,
            name="Sarah Manager",
            pin="5678",
            role=Role.MANAGER,
            permissions=_permissions(Role.MANAGER),
            created_at=now,
        ),
    ]


def seed_default_users(store: FirestoreStore, now: datetime) -> int:
    """Add the default users to an empty users collection.

    Returns the number of users added.
    """
    existing = store.get_users()
    if existing:
        logger.info("Found %d existing users, skipping seed", len(existing))
        return 0
    users = default_users(now)
    for user in users:
        store.add_user(user)
        logger.info("Added user %s", user.name)
    return len(users)
