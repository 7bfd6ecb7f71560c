"""
Custom Domain Management API

  1. Register a domain (quota + store-wide uniqueness)
  2. Read the CNAME records to configure at the DNS provider
  3. Verify (flips status / ssl_status to active)
  4. Update auto-renew / delete
"""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.crud import crud_domain
from hostpanel.models.user import User
from hostpanel.schemas.domain import (
    DNSConfig,
    DomainCreate,
    DomainCreateResult,
    DomainCreated,
    DomainList,
    DomainResult,
    DomainUpdate,
    DomainVerifyResult,
)
from hostpanel.services import domain_verification
from hostpanel.services.domain_verification import DomainVerifier

router = APIRouter()


@router.get("", response_model=DomainList)
def list_domains(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domains = domain_verification.list_domains(db, current_user)
    return DomainList(domains=domains, count=len(domains))


@router.post("", response_model=DomainCreateResult, status_code=201)
def add_domain(
    body: DomainCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain = domain_verification.register(
        db, current_user, body.domain_name, auto_renew=body.auto_renew
    )
    return DomainCreateResult(
        domain=DomainCreated(
            id=domain.id,
            domain_name=domain.domain_name,
            status=domain.status,
            verification_token=domain.verification_token,
            dns_records=domain.dns_records,
            auto_renew=domain.auto_renew,
        )
    )


@router.get("/{domain_id}", response_model=DomainResult)
def get_domain(
    domain_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain = domain_verification.get_owned(db, current_user, domain_id)
    return DomainResult(domain=domain)


@router.post("/{domain_id}/verify", response_model=DomainVerifyResult)
def verify_domain(
    domain_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
    verifier: DomainVerifier = Depends(deps.get_domain_verifier),
) -> Any:
    domain = domain_verification.verify(db, current_user, domain_id, verifier)
    return DomainVerifyResult(status=domain.status, ssl_status=domain.ssl_status)


@router.get("/{domain_id}/dns", response_model=DNSConfig)
def get_dns_config(
    domain_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain = domain_verification.get_owned(db, current_user, domain_id)
    return DNSConfig(
        domain_name=domain.domain_name,
        status=domain.status,
        dns_records=domain.dns_records,
        instructions=domain_verification.dns_instructions(domain),
    )


@router.put("/{domain_id}", response_model=DomainResult)
def update_domain(
    domain_id: UUID,
    body: DomainUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain = domain_verification.get_owned(db, current_user, domain_id)
    domain = crud_domain.update(db, db_obj=domain, obj_in=body)
    return DomainResult(message="Domain updated successfully", domain=domain)


@router.delete("/{domain_id}")
def delete_domain(
    domain_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain_verification.delete(db, current_user, domain_id)
    return {"message": "Domain deleted successfully"}
