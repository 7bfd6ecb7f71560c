"""Account-level operations: stats rollup, plan changes and account removal."""
import logging
import shutil
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from hostpanel.crud import crud_file, crud_user
from hostpanel.models.domain import Domain
from hostpanel.models.file import File
from hostpanel.models.user import User
from hostpanel.models.website import Website
from hostpanel.services import quota
from hostpanel.services.file_storage import user_upload_dir

logger = logging.getLogger("hostpanel.account")

RECENT_ACTIVITY_LIMIT = 10


def recent_activity(db: Session, user: User, limit: int = RECENT_ACTIVITY_LIMIT) -> List[Dict[str, Any]]:
    uploads = (
        db.query(File.original_name, File.created_at)
        .filter(File.user_id == user.id)
        .order_by(File.created_at.desc())
        .limit(limit)
        .all()
    )
    domains = (
        db.query(Domain.domain_name, Domain.created_at)
        .filter(Domain.user_id == user.id)
        .order_by(Domain.created_at.desc())
        .limit(limit)
        .all()
    )
    activity = [
        {"activity_type": "file_upload", "activity_description": name, "activity_date": created}
        for name, created in uploads
    ] + [
        {"activity_type": "domain_added", "activity_description": name, "activity_date": created}
        for name, created in domains
    ]
    activity.sort(key=lambda a: a["activity_date"], reverse=True)
    return activity[:limit]


def get_stats(db: Session, user: User) -> Dict[str, Any]:
    file_stats = crud_file.get_stats(db, user.id)
    websites = db.query(func.count(Website.id)).filter(Website.user_id == user.id).scalar() or 0

    return {
        "storage": quota.usage_report(user.storage_quota, file_stats["total_size"]),
        "domains": quota.domain_usage(db, user),
        "resources": {
            "websites": websites,
            "files": file_stats["total_files"],
            "total_downloads": file_stats["total_downloads"],
        },
        "plan": {
            "type": user.plan_type,
            "member_since": user.created_at,
        },
        "recent_activity": recent_activity(db, user),
    }


def upgrade_plan(db: Session, user: User, plan: str) -> User:
    # Payment processing is out of scope; the plan switch is immediate
    updated = crud_user.apply_plan(db, db_obj=user, plan=plan)
    logger.info("User %s moved to %s plan", user.id, plan, extra={"plan_type": plan})
    return updated


def delete_account(db: Session, user: User) -> None:
    upload_dir = user_upload_dir(user.id)
    user_id = user.id
    crud_user.delete(db, db_obj=user)

    # Rows are gone; the bytes are removed best-effort
    try:
        shutil.rmtree(upload_dir)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Failed to remove upload directory %s: %s", upload_dir, e)
    logger.info("Account deleted: %s", user_id)
