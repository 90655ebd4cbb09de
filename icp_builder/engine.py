"""
ICP Builder - Main Orchestrator
===============================
Composes the pipeline stages with persistence:
  analyze:  Domain Scraper -> ICP Generator -> store company / ICP / personas
  qualify:  load ICP -> per domain (Domain Scraper -> Prospect Qualifier ->
            store prospect / qualification), all domains settled independently

The TTL cache is created by (or handed to) the engine; the host process
owns its lifetime.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx
import structlog

from .cache import TTLCache
from .errors import AppError, client_error_message
from .models.schemas import CompanyInfo, ICPData, Persona, QualificationResult
from .stages.completion import CompletionClient
from .stages.icp_generator import ICPGenerator
from .stages.qualifier import ProspectQualifier
from .stages.scraper import DomainScraper
from .storage.repository import Repository, Row

logger = structlog.get_logger(__name__)


class ICPEngine:
    """
    Main engine that orchestrates scraping, ICP generation and qualification.
    """

    def __init__(
        self,
        completion_client: Optional[CompletionClient] = None,
        cache: Optional[TTLCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the engine.

        Args:
            completion_client: LLM wrapper (built from LLM_CONFIG if not provided)
            cache: TTL cache for scraped companies (a fresh one if not provided)
            http_client: Shared HTTP client for the scraper
        """
        self.cache = cache if cache is not None else TTLCache()
        self.completion_client = completion_client or CompletionClient()

        # Initialize stages
        self.scraper = DomainScraper(self.completion_client, self.cache, http_client)
        self.generator = ICPGenerator(self.completion_client)
        self.qualifier = ProspectQualifier(self.completion_client)

        self.reset_stats()

    # =========================================================================
    # Company analysis
    # =========================================================================

    async def analyze_company(
        self, domain: str, user_id: str, repository: Repository
    ) -> Dict[str, Any]:
        """
        Scrape a company, generate its ICP and persist both.

        Returns the existing ICP instead when the company already has one.
        """
        logger.info("Analyzing company domain", domain=domain, user_id=user_id)
        self.stats["companies_analyzed"] += 1

        try:
            company_info = await self.scraper.analyze_domain(domain)
        except Exception as e:
            raise AppError.external_service("Company analysis", e)

        company = await repository.get_company_by_domain(domain)
        if company:
            existing_icp = await repository.get_icp_for_company(company["id"])
            if existing_icp:
                logger.info(
                    "ICP already exists, returning existing data",
                    icp_id=existing_icp["id"],
                    user_id=user_id,
                )
                return {
                    "success": True,
                    "icpId": existing_icp["id"],
                    "company": company,
                    "icp": existing_icp,
                    "isExisting": True,
                    "message": f'ICP "{existing_icp["title"]}" already exists for this company.',
                }
            logger.info("Company exists, creating new ICP", company_id=company["id"])
        else:
            company = await repository.insert_company({
                "user_id": user_id,
                "domain": domain,
                "name": company_info.name,
                "description": company_info.description,
                "industry": company_info.industry,
            })
            logger.info("Company created", company_id=company["id"])

        logger.info("Generating ICP", company_id=company["id"])
        try:
            icp_data = await self.generator.generate_icp(company_info)
        except Exception as e:
            raise AppError.external_service("ICP generation", e)
        self.stats["icps_generated"] += 1

        icp = await repository.insert_icp(icp_to_row(icp_data, company["id"], user_id))
        icp["buyer_personas"] = await repository.insert_personas(
            [persona_to_row(persona, icp["id"]) for persona in icp_data.personas]
        )

        logger.info("ICP created successfully", icp_id=icp["id"], user_id=user_id)
        return {
            "success": True,
            "icpId": icp["id"],
            "company": company,
            "icp": icp,
        }

    async def get_icp(self, icp_id: str, repository: Repository) -> Row:
        icp = await repository.get_icp(icp_id)
        if not icp:
            raise AppError.not_found("ICP")
        return icp

    async def list_icps(self, user_id: str, repository: Repository, limit: int) -> List[Row]:
        """The user's ICPs with their company, newest first"""
        icps = await repository.list_icps(user_id, limit)
        logger.debug("Listed ICPs", user_id=user_id, count=len(icps))
        return icps

    # =========================================================================
    # Prospect qualification
    # =========================================================================

    async def qualify_prospects(
        self,
        icp_id: str,
        domains: List[str],
        user_id: str,
        repository: Repository,
    ) -> Dict[str, Any]:
        """
        Qualify every domain against the ICP.

        Domains run concurrently and settle independently: a failure fills
        that domain's slot with an error and leaves the others untouched.
        """
        start_time = time.time()
        logger.info(
            "Qualifying prospects", icp_id=icp_id, domain_count=len(domains), user_id=user_id
        )

        icp_row = await self.get_icp(icp_id, repository)
        icp = icp_from_row(icp_row)

        outcomes = await asyncio.gather(
            *(
                self._qualify_domain(domain, icp, icp_id, user_id, repository)
                for domain in domains
            ),
            return_exceptions=True,
        )

        results = []
        for domain, outcome in zip(domains, outcomes):
            if isinstance(outcome, BaseException):
                results.append({"domain": domain, "error": client_error_message(outcome)})
            else:
                results.append(outcome)

        successful = sum(1 for r in results if "error" not in r)
        failed = len(domains) - successful
        self.stats["prospects_qualified"] += successful
        self.stats["qualification_failures"] += failed

        logger.info(
            "Qualification complete",
            icp_id=icp_id,
            total_domains=len(domains),
            success_count=successful,
            failure_count=failed,
            user_id=user_id,
            processing_time_ms=round((time.time() - start_time) * 1000, 2),
        )

        return {
            "success": True,
            "results": results,
            "summary": {
                "total": len(domains),
                "successful": successful,
                "failed": failed,
            },
        }

    async def _qualify_domain(
        self,
        domain: str,
        icp: ICPData,
        icp_id: str,
        user_id: str,
        repository: Repository,
    ) -> Dict[str, Any]:
        try:
            prospect_info = await self.scraper.analyze_domain(domain)
            prospect = await repository.insert_prospect(
                prospect_to_row(prospect_info, domain, icp_id, user_id)
            )
            result = await self.qualifier.qualify(prospect_info, icp)
            qualification = await repository.insert_qualification(
                qualification_to_row(result, prospect["id"], icp_id, user_id)
            )
        except Exception as e:
            logger.error("Error processing domain", domain=domain, user_id=user_id, error=str(e))
            raise

        return {
            "domain": domain,
            "prospect": prospect,
            "qualification": qualification,
        }

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        stats["cache"] = self.cache.stats()
        return stats

    def reset_stats(self):
        """Reset engine statistics"""
        self.stats = {
            "companies_analyzed": 0,
            "icps_generated": 0,
            "prospects_qualified": 0,
            "qualification_failures": 0,
        }


# =============================================================================
# Row Mapping
# =============================================================================

def icp_to_row(icp: ICPData, company_id: str, user_id: str) -> Row:
    return {
        "company_id": company_id,
        "user_id": user_id,
        "title": icp.title,
        "description": icp.description,
        "company_size_min": icp.company_size_min,
        "company_size_max": icp.company_size_max,
        "revenue_range_min": icp.revenue_min,
        "revenue_range_max": icp.revenue_max,
        "industries": icp.industries,
        "geographic_regions": icp.geographic_regions,
        "funding_stages": icp.funding_stages,
    }


def persona_to_row(persona: Persona, icp_id: str) -> Row:
    return {
        "icp_id": icp_id,
        "title": persona.title,
        "role": persona.role,
        "department": persona.department,
        "seniority_level": persona.seniority_level,
        "pain_points": persona.pain_points,
        "goals": persona.goals,
    }


def icp_from_row(row: Row) -> ICPData:
    """Rebuild ICPData from a stored ICP row with its buyer_personas"""
    return ICPData(
        title=row.get("title") or "",
        description=row.get("description") or "",
        company_size_min=row.get("company_size_min") or 0,
        company_size_max=row.get("company_size_max") or 0,
        revenue_min=row.get("revenue_range_min") or 0,
        revenue_max=row.get("revenue_range_max") or 0,
        industries=row.get("industries") or [],
        geographic_regions=row.get("geographic_regions") or [],
        funding_stages=row.get("funding_stages") or [],
        personas=[
            Persona(
                title=p.get("title") or "",
                role=p.get("role") or "",
                department=p.get("department") or "",
                seniority_level=p.get("seniority_level") or "",
                pain_points=p.get("pain_points") or [],
                goals=p.get("goals") or [],
            )
            for p in row.get("buyer_personas") or []
        ],
    )


def prospect_to_row(info: CompanyInfo, domain: str, icp_id: str, user_id: str) -> Row:
    return {
        "icp_id": icp_id,
        "user_id": user_id,
        "domain": domain,
        "name": info.name,
        "description": info.description,
        "industry": info.industry,
    }


def qualification_to_row(
    result: QualificationResult, prospect_id: str, icp_id: str, user_id: str
) -> Row:
    return {
        "prospect_id": prospect_id,
        "icp_id": icp_id,
        "user_id": user_id,
        "score": result.score,
        "fit_level": result.fit_level.value,
        "reasoning": result.reasoning,
        "strengths": result.strengths,
        "weaknesses": result.weaknesses,
        "recommendation": result.recommendation,
        "metadata": result.metadata,
    }


# =============================================================================
# Convenience Functions
# =============================================================================

def create_engine(
    llm_api_key: Optional[str] = None,
    llm_provider: Optional[str] = None,
    cache_ttl_seconds: Optional[float] = None,
) -> ICPEngine:
    """
    Factory function to create an engine with common settings.
    """
    cache = TTLCache(ttl_seconds=cache_ttl_seconds) if cache_ttl_seconds else TTLCache()
    completion_client = CompletionClient(api_key=llm_api_key, provider=llm_provider)
    return ICPEngine(completion_client=completion_client, cache=cache)
