"""
Seed the feature_access and access_groups collections.

Documents are written with merge=True, so re-running the script updates the
seeded fields and leaves anything else on the documents alone.

Credentials come from FIREBASE_SERVICE_ACCOUNT_JSON or
FIREBASE_SERVICE_ACCOUNT_PATH. Application default credentials are refused
so the target project is always explicit.

Usage:
    python -m scripts.seed_access
"""
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import firestore_async

# Add parent directory to path to import control_panel modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from control_panel.access.records import FEATURE_COLLECTION, GROUP_COLLECTION
from control_panel.infrastructure.firestore import build_credential

logger = logging.getLogger("control_panel.seed")

SEED_APP_NAME = "control-panel-seed"

FEATURE_ACCESS_SEED: list[dict[str, Any]] = [
    {
        "id": "controlPanelAccessFeatures",
        "route": "/access",
        "area": "controlPanel",
        "titleKey": "nav.controlPanel.access",
        "status": "logged_in",
        "minRole": "admin",
        "allowedRoles": ["admin"],
        "allowedGroups": [],
        "allowedUserIds": [],
        "showInTopbar": False,
        "showInSidebar": True,
        "navOrder": 60,
        "isExperimental": False,
    },
]

ACCESS_GROUPS_SEED: list[dict[str, Any]] = [
    {
        "id": "beta_testers",
        "label": "Beta Testers",
        "description": "Users who get access to beta features before public release.",
        "userIds": [],
        "minRole": "user",
        "allowedRoles": ["user", "moderator", "developer", "admin"],
        "isSystem": True,
    },
    {
        "id": "dev_team",
        "label": "Developer Team",
        "description": "Internal developers who can access dev-only tools and debug views.",
        "userIds": [],
        "minRole": "developer",
        "allowedRoles": ["developer", "admin"],
        "isSystem": True,
    },
    {
        "id": "creator_program",
        "label": "Creator Program",
        "description": "Content creators with extra tools and stats.",
        "userIds": [],
        "minRole": "user",
        "allowedRoles": ["user", "moderator", "developer", "admin"],
        "isSystem": False,
    },
]


def init_firestore() -> tuple[firebase_admin.App, Any]:
    service_account_json = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON", "").strip()
    service_account_path = os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH", "").strip()
    if not service_account_json and not service_account_path:
        raise RuntimeError(
            "No FIREBASE_SERVICE_ACCOUNT_JSON or FIREBASE_SERVICE_ACCOUNT_PATH set; "
            "refusing to use application default credentials"
        )

    credential = build_credential(service_account_json or None, service_account_path or None)
    app = firebase_admin.initialize_app(credential, name=SEED_APP_NAME)
    return app, firestore_async.client(app=app)


async def seed_collection(
    db: Any, collection: str, entries: Sequence[Mapping[str, Any]]
) -> int:
    if not entries:
        logger.warning("No seed entries provided for %s, skipping", collection)
        return 0

    written = 0
    for entry in entries:
        doc_id = entry.get("id")
        if not doc_id:
            logger.warning("Skipping entry without id in %s: %s", collection, entry)
            continue
        await db.collection(collection).document(str(doc_id)).set(dict(entry), merge=True)
        written += 1
    return written


async def seed_access() -> None:
    app, db = init_firestore()
    try:
        logger.info("Seeding %s...", FEATURE_COLLECTION)
        count = await seed_collection(db, FEATURE_COLLECTION, FEATURE_ACCESS_SEED)
        logger.info("Seeding %s... done (%d documents)", FEATURE_COLLECTION, count)

        logger.info("Seeding %s...", GROUP_COLLECTION)
        count = await seed_collection(db, GROUP_COLLECTION, ACCESS_GROUPS_SEED)
        logger.info("Seeding %s... done (%d documents)", GROUP_COLLECTION, count)
    finally:
        firebase_admin.delete_app(app)
    logger.info("Access control seeding complete")


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    try:
        asyncio.run(seed_access())
    except Exception:
        logger.exception("Access control seeding failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
