import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import Field, field_validator

from hostpanel.schemas.base import CamelModel

_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_TLD = re.compile(r"^([A-Za-z]{2,63}|xn--[A-Za-z0-9-]{2,59})$")


def is_fqdn(value: str) -> bool:
    """Fully-qualified domain name check: at least two labels and an alphabetic TLD."""
    if not value or len(value) > 253:
        return False
    labels = value.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL.match(label) for label in labels):
        return False
    return bool(_TLD.match(labels[-1]))


class DomainCreate(CamelModel):
    domain_name: str
    auto_renew: bool = False

    @field_validator("domain_name")
    @classmethod
    def _valid_fqdn(cls, v: str) -> str:
        if not is_fqdn(v):
            raise ValueError("Must be a valid domain name")
        return v


class DomainUpdate(CamelModel):
    auto_renew: Optional[bool] = None


class DNSRecord(CamelModel):
    name: str
    value: str
    ttl: int


class DNSRecords(CamelModel):
    cname: DNSRecord
    verification: DNSRecord


class DomainSummary(CamelModel):
    id: UUID
    domain_name: str
    status: str
    ssl_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    auto_renew: bool = False
    last_verified: Optional[datetime] = None


class DomainDetail(DomainSummary):
    dns_records: Optional[DNSRecords] = None
    verification_token: Optional[str] = None


class DomainList(CamelModel):
    domains: List[DomainSummary]
    count: int


class DomainCreated(CamelModel):
    id: UUID
    domain_name: str
    status: str
    verification_token: str
    dns_records: DNSRecords
    auto_renew: bool


class DomainCreateResult(CamelModel):
    message: str = "Domain added successfully"
    domain: DomainCreated


class DomainResult(CamelModel):
    message: Optional[str] = None
    domain: DomainDetail


class DomainVerifyResult(CamelModel):
    message: str = "Domain verified successfully"
    status: str
    ssl_status: str


class DNSInstructionRecord(CamelModel):
    type: str = "CNAME"
    name: str
    value: str
    ttl: int


class DNSInstructions(CamelModel):
    provider: str = "generic"
    records: List[DNSInstructionRecord] = Field(default_factory=list)


class DNSConfig(CamelModel):
    domain_name: str
    status: str
    dns_records: Optional[DNSRecords] = None
    instructions: DNSInstructions
