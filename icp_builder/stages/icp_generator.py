"""
ICP Generator
=============
Builds an Ideal Customer Profile for a company from its scraped summary.
Missing or malformed fields in the model's answer are backfilled from ICP_DEFAULTS.
"""

from typing import Any, Dict, List

import structlog

from ..config.settings import ICP_DEFAULTS, VALIDATION_LIMITS
from ..errors import ICPGenerationError
from ..models.schemas import CompanyInfo, ICPData, Persona
from .completion import CompletionClient, as_int, as_string_list, as_text, parse_json_response

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are an expert sales and marketing strategist who specializes in creating Ideal Customer Profiles (ICPs).
Your task is to analyze a company and generate a detailed ICP that describes their best potential customers.

Consider:
- Who would benefit most from this company's products/services
- What challenges do those customers face
- What are their goals and priorities
- Company characteristics (size, industry, revenue)
- Geographic and demographic factors
"""


class ICPGenerator:
    """
    Generates an ICP (firmographics + buyer personas) for a company.
    """

    def __init__(self, completion_client: CompletionClient):
        self.completion_client = completion_client

    async def generate_icp(self, company: CompanyInfo) -> ICPData:
        """
        Generate an ICP for the company.

        Raises:
            ICPGenerationError: the completion failed or returned unusable content
        """
        try:
            response = await self.completion_client.complete(
                SYSTEM_PROMPT,
                self._generate_prompt(company),
                json_mode=True,
            )
            data = parse_json_response(response)
            return self._build_icp(data, company)
        except Exception as e:
            logger.error("Error generating ICP", company_name=company.name, error=str(e))
            raise ICPGenerationError("Failed to generate ICP") from e

    def _generate_prompt(self, company: CompanyInfo) -> str:
        context = f"Context: {company.additional_context}" if company.additional_context else ""
        max_personas = VALIDATION_LIMITS["max_personas_per_icp"]

        return f"""Based on this company information, generate a comprehensive Ideal Customer Profile:

Company: {company.name}
Description: {company.description}
Industry: {company.industry}
{context}

Generate a detailed ICP with the following JSON structure:
{{
  "title": "A short title for this ICP (e.g., 'Mid-Market SaaS Companies')",
  "description": "2-3 sentence overview of the ideal customer",
  "companySizeMin": minimum employee count (number),
  "companySizeMax": maximum employee count (number),
  "revenueMin": minimum annual revenue in USD (number),
  "revenueMax": maximum annual revenue in USD (number),
  "industries": ["array", "of", "target", "industries"],
  "geographicRegions": ["array", "of", "regions"],
  "fundingStages": ["array", "of", "funding stages like Seed, Series A, etc."],
  "personas": [
    {{
      "title": "Persona name/title",
      "role": "Job title",
      "department": "Department",
      "seniorityLevel": "Seniority level (e.g., Director, VP, C-Level)",
      "painPoints": ["array", "of", "pain", "points"],
      "goals": ["array", "of", "goals"]
    }}
  ]
}}

Include 3-{max_personas} buyer personas that represent different decision-makers and influencers.
Be specific and actionable.
"""

    def _build_icp(self, data: Dict[str, Any], company: CompanyInfo) -> ICPData:
        """Backfill anything the model left out or sent in an unusable shape"""
        personas = [
            self._build_persona(p) for p in _persona_objects(data.get("personas"))
        ]
        default_industries = (
            [company.industry] if company.industry else list(ICP_DEFAULTS["industries"])
        )

        return ICPData(
            title=as_text(data.get("title")) or ICP_DEFAULTS["title"],
            description=as_text(data.get("description")) or ICP_DEFAULTS["description"],
            company_size_min=_number(data.get("companySizeMin"), "company_size_min"),
            company_size_max=_number(data.get("companySizeMax"), "company_size_max"),
            revenue_min=_number(data.get("revenueMin"), "revenue_min"),
            revenue_max=_number(data.get("revenueMax"), "revenue_max"),
            industries=as_string_list(data.get("industries")) or default_industries,
            geographic_regions=(
                as_string_list(data.get("geographicRegions")) or list(ICP_DEFAULTS["regions"])
            ),
            funding_stages=(
                as_string_list(data.get("fundingStages")) or list(ICP_DEFAULTS["funding_stages"])
            ),
            personas=personas[: VALIDATION_LIMITS["max_personas_per_icp"]],
        )

    def _build_persona(self, data: Dict[str, Any]) -> Persona:
        return Persona(
            title=as_text(data.get("title")),
            role=as_text(data.get("role")),
            department=as_text(data.get("department")),
            seniority_level=as_text(data.get("seniorityLevel")),
            pain_points=as_string_list(data.get("painPoints")),
            goals=as_string_list(data.get("goals")),
        )


def _persona_objects(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _number(value: Any, default_key: str) -> int:
    """Positive int from the model, else the ICP default"""
    number = as_int(value)
    if number is None or number <= 0:
        return ICP_DEFAULTS[default_key]
    return number
