"""
Pydantic schemas for ICP Builder
"""

import re
import uuid
from enum import Enum
from typing import List, Dict, Optional, Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from ..config.settings import VALIDATION_LIMITS


# =============================================================================
# ENUMS
# =============================================================================

class FitLevel(str, Enum):
    """How well a prospect matches an ICP"""
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"


# =============================================================================
# BASE
# =============================================================================

class CamelModel(BaseModel):
    """Accepts and emits camelCase field names (the LLM and API wire format)"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# PIPELINE SCHEMAS
# =============================================================================

class CompanyInfo(CamelModel):
    """Structured summary of a company, derived from its website"""
    name: str
    description: str
    industry: str
    additional_context: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class Persona(CamelModel):
    """A buyer persona inside an ICP"""
    title: str = ""
    role: str = ""
    department: str = ""
    seniority_level: str = ""
    pain_points: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)


class ICPData(CamelModel):
    """Ideal Customer Profile generated for a company"""
    title: str
    description: str
    company_size_min: int
    company_size_max: int
    revenue_min: int
    revenue_max: int
    industries: List[str] = Field(default_factory=list)
    geographic_regions: List[str] = Field(default_factory=list)
    funding_stages: List[str] = Field(default_factory=list)
    personas: List[Persona] = Field(default_factory=list)


class QualificationResult(CamelModel):
    """Score of a prospect against an ICP"""
    score: int = Field(..., ge=0, le=100)
    fit_level: FitLevel
    reasoning: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendation: str
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

DOMAIN_PATTERN = re.compile(
    r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$",
    re.IGNORECASE,
)


def normalize_domain(value: str) -> str:
    """
    Lowercase a domain, strip a leading http(s):// and a trailing slash,
    then check its length and shape.
    """
    domain = value.strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    if domain.endswith("/"):
        domain = domain[:-1]

    min_length = VALIDATION_LIMITS["domain_min_length"]
    max_length = VALIDATION_LIMITS["domain_max_length"]
    if len(domain) < min_length:
        raise ValueError(f"Domain must be at least {min_length} characters")
    if len(domain) > max_length:
        raise ValueError(f"Domain must be at most {max_length} characters")
    if not DOMAIN_PATTERN.match(domain):
        raise ValueError("Invalid domain format")
    return domain


def validate_uuid(value: str, field_name: str = "ICP ID") -> str:
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError, TypeError):
        raise ValueError(f"Invalid {field_name} format")


class AnalyzeCompanyRequest(BaseModel):
    """Request to analyze a company and generate its ICP"""
    domain: str = Field(..., description="Company domain, e.g. acme.com")

    @field_validator("domain")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_domain(value)

    class Config:
        json_schema_extra = {"example": {"domain": "stripe.com"}}


class QualifyProspectsRequest(BaseModel):
    """Request to qualify prospect domains against an ICP"""
    icp_id: str = Field(..., alias="icpId", description="ICP identifier (UUID)")
    domains: List[str] = Field(..., description="Prospect domains to qualify")

    @field_validator("icp_id")
    @classmethod
    def _check_icp_id(cls, value: str) -> str:
        return validate_uuid(value)

    @field_validator("domains")
    @classmethod
    def _check_domains(cls, value: List[str]) -> List[str]:
        limit = VALIDATION_LIMITS["max_domains_per_request"]
        if not value:
            raise ValueError("At least one domain is required")
        if len(value) > limit:
            raise ValueError(f"Maximum {limit} domains allowed per request")
        return [normalize_domain(domain) for domain in value]

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "icpId": "0b6f3a52-3f43-4c2e-9d0e-3f5f1b2f7a11",
                "domains": ["linear.app", "notion.so", "vercel.com"],
            }
        }


class ICPLookupRequest(BaseModel):
    """Path parameters for reading a stored ICP"""
    icp_id: str = Field(..., alias="icpId")

    @field_validator("icp_id")
    @classmethod
    def _check_icp_id(cls, value: str) -> str:
        return validate_uuid(value)

    class Config:
        populate_by_name = True


class ICPListRequest(BaseModel):
    """Query parameters for listing the caller's ICPs"""
    limit: int = Field(
        VALIDATION_LIMITS["icp_page_size"],
        ge=1,
        le=VALIDATION_LIMITS["max_icp_page_size"],
        description="Maximum number of ICPs to return, newest first",
    )
