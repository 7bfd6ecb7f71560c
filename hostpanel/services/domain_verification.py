"""
Custom domain lifecycle.

  register  →  pending/pending, DNS-record descriptor issued
  verify    →  active/active on a passing predicate, untouched otherwise

The verification predicate is a pluggable ``DomainVerifier``. No real DNS
lookup is performed: ``SimulatedVerifier`` is a placeholder that passes at
random (about 70% of the time by default), ``StaticVerifier`` always returns
the same answer and is what tests inject.
"""
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostpanel.config import settings
from hostpanel.crud import crud_domain
from hostpanel.exceptions import DuplicateDomain, NotFound, ValidationError
from hostpanel.models.domain import Domain, DomainStatus, SSLStatus
from hostpanel.models.user import User
from hostpanel.services import quota

logger = logging.getLogger("hostpanel.domains")


# ── Verification predicate ──

class DomainVerifier(Protocol):
    def verify(self, domain: Domain) -> bool:
        ...


class SimulatedVerifier:
    """Placeholder for a DNS check: non-deterministic pass/fail."""

    def __init__(self, success_rate: float = 0.7, rng: Optional[random.Random] = None):
        self.success_rate = success_rate
        self._rng = rng or random.Random()

    def verify(self, domain: Domain) -> bool:
        return self._rng.random() < self.success_rate


class StaticVerifier:
    def __init__(self, result: bool):
        self.result = result

    def verify(self, domain: Domain) -> bool:
        return self.result


def build_verifier(mode: Optional[str] = None) -> DomainVerifier:
    mode = mode or settings.DOMAIN_VERIFICATION_MODE
    if mode == "pending":
        return StaticVerifier(False)
    if mode == "pass":
        return StaticVerifier(True)
    return SimulatedVerifier(settings.DOMAIN_VERIFICATION_SUCCESS_RATE)


# ── DNS-record descriptor ──

def build_dns_records(domain_name: str, domain_id: Any) -> Dict[str, Dict[str, Any]]:
    ttl = settings.DNS_RECORD_TTL
    return {
        "cname": {
            "name": domain_name,
            "value": settings.EXTERNAL_HOSTNAME,
            "ttl": ttl,
        },
        "verification": {
            "name": f"_acme-challenge.{domain_name}",
            "value": f"{domain_id}.{settings.VERIFY_HOST_SUFFIX}",
            "ttl": ttl,
        },
    }


def dns_instructions(domain: Domain) -> Dict[str, Any]:
    records = build_dns_records(domain.domain_name, domain.id)
    return {
        "provider": "generic",
        "records": [
            {"type": "CNAME", **records["cname"]},
            {"type": "CNAME", **records["verification"]},
        ],
    }


# ── Operations ──

def get_owned(db: Session, user: User, domain_id: uuid.UUID) -> Domain:
    domain = crud_domain.get_owned(db, domain_id=domain_id, user_id=user.id)
    if not domain:
        raise NotFound("Domain not found")
    return domain


def list_domains(db: Session, user: User) -> List[Domain]:
    return crud_domain.get_by_user(db, user.id)


def register(db: Session, user: User, domain_name: str, auto_renew: bool = False) -> Domain:
    """Register ``domain_name`` for ``user`` in pending state."""
    try:
        quota.check_domains(db, user.id)

        # Uniqueness is store-wide and case-sensitive
        if crud_domain.get_by_name(db, domain_name):
            raise DuplicateDomain("Domain already exists")

        domain = Domain(
            user_id=user.id,
            domain_name=domain_name,
            status=DomainStatus.PENDING.value,
            ssl_status=SSLStatus.PENDING.value,
            verification_token=str(uuid.uuid4()),
            auto_renew=auto_renew,
        )
        db.add(domain)
        db.flush()
        domain.dns_records = build_dns_records(domain.domain_name, domain.id)
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same name
        db.rollback()
        raise DuplicateDomain("Domain already exists")
    except Exception:
        db.rollback()
        raise

    db.refresh(domain)
    logger.info(
        "Domain registered: %s for user %s", domain.domain_name, user.id,
        extra={"domain_id": domain.id, "domain_name": domain.domain_name},
    )
    return domain


def verify(db: Session, user: User, domain_id: uuid.UUID, verifier: DomainVerifier) -> Domain:
    """
    Run the verification predicate.

    On pass status and ssl_status flip to active together with last_verified
    in a single commit. On fail nothing is written and ValidationError carries
    the current DNS-record descriptor back to the caller.
    """
    domain = get_owned(db, user, domain_id)

    if not verifier.verify(domain):
        logger.info("Domain verification failed: %s", domain.domain_name, extra={"domain_id": domain.id})
        raise ValidationError(
            "Domain verification failed",
            message="DNS records not configured correctly",
            dnsRecords=domain.dns_records,
        )

    domain.status = DomainStatus.ACTIVE.value
    domain.ssl_status = SSLStatus.ACTIVE.value
    domain.last_verified = datetime.now(timezone.utc)
    db.commit()
    db.refresh(domain)
    logger.info("Domain verified: %s", domain.domain_name, extra={"domain_id": domain.id})
    return domain


def delete(db: Session, user: User, domain_id: uuid.UUID) -> None:
    domain = get_owned(db, user, domain_id)
    name, removed_id = domain.domain_name, domain.id
    crud_domain.delete(db, db_obj=domain)
    logger.info("Domain deleted: %s", name, extra={"domain_id": removed_id})
