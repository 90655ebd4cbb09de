"""
Prospect Qualifier
==================
Scores a prospect company against an ICP using the LLM.

Post-processing does not trust the model's categorical answer:
  - score is coerced to an int and clamped to [0, 100]
  - fit level is recomputed from the clamped score (90 / 70 / 50)
"""

import math
from typing import Any, Dict

import structlog

from ..config.settings import SCORE_THRESHOLDS
from ..errors import QualificationError
from ..models.schemas import CompanyInfo, FitLevel, ICPData, QualificationResult
from .completion import CompletionClient, as_string_list, as_text, parse_json_response

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are an expert sales qualification analyst. Your job is to evaluate whether a prospect company is a good fit for a given Ideal Customer Profile (ICP).

Analyze the prospect against the ICP criteria and provide:
1. A qualification score (0-100)
2. Fit level (excellent, good, moderate, or poor)
3. Detailed reasoning
4. Specific strengths (why they're a good fit)
5. Specific weaknesses (why they might not be a perfect fit)
6. A recommendation for next steps

Be honest and analytical. Consider all factors including industry, company characteristics, and how well their needs align with what the ICP represents.
"""


def clamp_score(raw: Any) -> int:
    """Coerce a model-provided score to an int in [min, max]; unusable input is 0"""
    low, high = SCORE_THRESHOLDS["min"], SCORE_THRESHOLDS["max"]

    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return low
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return low
    if isinstance(raw, float) and math.isnan(raw):
        return low

    # compare before converting; huge JSON ints overflow float()
    if raw >= high:
        return high
    if raw <= low:
        return low
    return int(raw)


def fit_level_for(score: int) -> FitLevel:
    """Fit level is a pure function of the clamped score"""
    if score >= SCORE_THRESHOLDS["excellent"]:
        return FitLevel.EXCELLENT
    if score >= SCORE_THRESHOLDS["good"]:
        return FitLevel.GOOD
    if score >= SCORE_THRESHOLDS["moderate"]:
        return FitLevel.MODERATE
    return FitLevel.POOR


class ProspectQualifier:
    """
    Qualifies a scraped prospect against an existing ICP.
    """

    def __init__(self, completion_client: CompletionClient):
        self.completion_client = completion_client

    async def qualify(self, prospect: CompanyInfo, icp: ICPData) -> QualificationResult:
        """
        Raises:
            QualificationError: the completion failed or returned unusable content
        """
        try:
            response = await self.completion_client.complete(
                SYSTEM_PROMPT,
                self._generate_prompt(prospect, icp),
                json_mode=True,
            )
            data = parse_json_response(response)
            return self._build_result(data)
        except Exception as e:
            logger.error("Error qualifying prospect", prospect_name=prospect.name, error=str(e))
            raise QualificationError("Failed to qualify prospect") from e

    def _generate_prompt(self, prospect: CompanyInfo, icp: ICPData) -> str:
        context = f"Context: {prospect.additional_context}" if prospect.additional_context else ""

        personas = "\n".join(
            f"""
- {p.title} ({p.role} in {p.department})
  Pain Points: {', '.join(p.pain_points)}
  Goals: {', '.join(p.goals)}"""
            for p in icp.personas
        )

        excellent = SCORE_THRESHOLDS["excellent"]
        good = SCORE_THRESHOLDS["good"]
        moderate = SCORE_THRESHOLDS["moderate"]

        return f"""Evaluate this prospect against the ICP:

PROSPECT:
Name: {prospect.name}
Description: {prospect.description}
Industry: {prospect.industry}
{context}

ICP CRITERIA:
Title: {icp.title}
Description: {icp.description}
Target Industries: {', '.join(icp.industries)}
Company Size: {icp.company_size_min} - {icp.company_size_max} employees
Revenue Range: ${icp.revenue_min / 1_000_000:.1f}M - ${icp.revenue_max / 1_000_000:.1f}M
Geographic Regions: {', '.join(icp.geographic_regions)}
Funding Stages: {', '.join(icp.funding_stages)}

BUYER PERSONAS:
{personas}

Provide a detailed qualification analysis in JSON format:
{{
  "score": 0-100 (integer),
  "fitLevel": "excellent" | "good" | "moderate" | "poor",
  "reasoning": "Detailed 3-4 sentence explanation of the score",
  "strengths": ["array", "of", "specific", "strengths"],
  "weaknesses": ["array", "of", "specific", "weaknesses"],
  "recommendation": "Specific recommendation for next steps (e.g., 'High priority - schedule discovery call' or 'Not a fit - deprioritize')",
  "metadata": {{
    "industryMatch": true/false,
    "sizeEstimate": "estimated company size if known",
    "keyInsights": ["additional", "insights"]
  }}
}}

Scoring guide:
- {excellent}-{SCORE_THRESHOLDS["max"]}: Excellent fit - matches all key criteria
- {good}-{excellent - 1}: Good fit - matches most criteria with minor gaps
- {moderate}-{good - 1}: Moderate fit - some criteria match but significant gaps exist
- {SCORE_THRESHOLDS["min"]}-{moderate - 1}: Poor fit - major misalignment with ICP
"""

    def _build_result(self, data: Dict[str, Any]) -> QualificationResult:
        score = clamp_score(data.get("score"))
        metadata = data.get("metadata")

        return QualificationResult(
            score=score,
            # recomputed; the model's fitLevel is discarded
            fit_level=fit_level_for(score),
            reasoning=as_text(data.get("reasoning")) or "No reasoning provided",
            strengths=as_string_list(data.get("strengths")),
            weaknesses=as_string_list(data.get("weaknesses")),
            recommendation=as_text(data.get("recommendation")) or "Review manually",
            metadata=metadata if isinstance(metadata, dict) else None,
        )

