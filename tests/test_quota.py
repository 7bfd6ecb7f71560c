"""Service-level tests for the quota ledger against a real session."""
import uuid

import pytest

from hostpanel.crud import crud_file, crud_user
from hostpanel.exceptions import NotFound, QuotaExceeded
from hostpanel.models.domain import Domain
from hostpanel.schemas.user import UserRegister
from hostpanel.services import account, quota


def _user(db, email="quota@example.com"):
    return crud_user.create(db, obj_in=UserRegister(email=email, password="Secret123!"))


def _file(db, user, size):
    return crud_file.create(
        db,
        user_id=user.id,
        original_name="f.txt",
        stored_name=f"file-{size}.txt",
        file_path=f"/nonexistent/{size}",
        file_size=size,
        mime_type="text/plain",
        is_public=False,
    )


def test_storage_is_aggregated_live(db):
    user = _user(db)
    _file(db, user, 100)
    _file(db, user, 50)
    assert crud_file.storage_used(db, user.id) == 150

    user.storage_quota = 200
    db.commit()
    quota.check_storage(db, user.id, 50)
    with pytest.raises(QuotaExceeded) as exc:
        quota.check_storage(db, user.id, 51)
    assert exc.value.extra == {"quota": 200, "used": 150, "requested": 51}


def test_storage_is_per_user(db):
    alice = _user(db, "alice@example.com")
    bob = _user(db, "bob@example.com")
    _file(db, alice, 500)
    assert crud_file.storage_used(db, bob.id) == 0


def test_domain_quota_counts_owned_domains(db):
    user = _user(db)
    db.add_all([
        Domain(user_id=user.id, domain_name=f"d{i}.example.com", verification_token=f"t{i}")
        for i in range(2)
    ])
    db.commit()
    with pytest.raises(QuotaExceeded):
        quota.check_domains(db, user.id)

    account.upgrade_plan(db, user, "enterprise")
    quota.check_domains(db, user.id)
    assert quota.domain_usage(db, user) == {"quota": 100, "used": 2, "available": 98}


def test_lock_user_missing(db):
    with pytest.raises(NotFound):
        quota.lock_user(db, uuid.uuid4())
