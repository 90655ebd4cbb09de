"""Test prospect qualification and score post-processing."""

import pytest

from icp_builder.errors import AppError, QualificationError
from icp_builder.models.schemas import CompanyInfo, FitLevel, ICPData, Persona
from icp_builder.stages.qualifier import ProspectQualifier, clamp_score, fit_level_for

from conftest import FakeCompletionClient, qualification_reply

PROSPECT = CompanyInfo(name="Linear", description="Issue tracking for software teams.", industry="SaaS")

ICP = ICPData(
    title="Mid-Market SaaS",
    description="B2B software companies.",
    company_size_min=100,
    company_size_max=1000,
    revenue_min=10_000_000,
    revenue_max=200_000_000,
    industries=["SaaS"],
    geographic_regions=["North America"],
    funding_stages=["Series B"],
    personas=[
        Persona(
            title="Engineering Leader",
            role="VP Engineering",
            department="Engineering",
            pain_points=["Slow releases"],
            goals=["Ship faster"],
        )
    ],
)


class TestClampScore:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (85, 85),
            (150, 100),
            (-20, 0),
            (72.9, 72),
            ("64", 64),
            ("high", 0),
            (None, 0),
            (True, 0),
            (float("nan"), 0),
            ([90], 0),
            (10 ** 400, 100),
            (-(10 ** 400), 0),
            ("1e400", 100),
            (float("inf"), 100),
        ],
    )
    def test_clamp(self, raw, expected):
        assert clamp_score(raw) == expected


class TestFitLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (100, FitLevel.EXCELLENT),
            (90, FitLevel.EXCELLENT),
            (89, FitLevel.GOOD),
            (70, FitLevel.GOOD),
            (69, FitLevel.MODERATE),
            (50, FitLevel.MODERATE),
            (49, FitLevel.POOR),
            (0, FitLevel.POOR),
        ],
    )
    def test_boundaries(self, score, level):
        assert fit_level_for(score) is level


class TestProspectQualifier:
    """Test suite for ProspectQualifier."""

    @pytest.mark.asyncio
    async def test_qualifies_prospect(self):
        completion = FakeCompletionClient([qualification_reply(92, "excellent")])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)

        assert result.score == 92
        assert result.fit_level is FitLevel.EXCELLENT
        assert result.strengths == ["Industry match"]
        assert result.recommendation == "Schedule discovery call"
        assert result.metadata == {"industryMatch": True}

    @pytest.mark.asyncio
    async def test_model_fit_level_is_ignored(self):
        completion = FakeCompletionClient([qualification_reply(95, "poor")])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)
        assert result.fit_level is FitLevel.EXCELLENT

    @pytest.mark.asyncio
    async def test_out_of_range_score_is_clamped(self):
        completion = FakeCompletionClient([qualification_reply(150, "excellent")])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)
        assert result.score == 100
        assert result.fit_level is FitLevel.EXCELLENT

    @pytest.mark.asyncio
    async def test_huge_integer_score_is_clamped(self):
        reply = '{"score": ' + "9" * 400 + ', "reasoning": "Perfect match"}'
        completion = FakeCompletionClient([reply])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)

        assert result.score == 100
        assert result.fit_level is FitLevel.EXCELLENT

    @pytest.mark.asyncio
    async def test_wrong_typed_fields_are_coerced(self):
        reply = dict(
            qualification_reply(75),
            reasoning=["Industry fits.", "Size fits."],
            recommendation={"next": "call"},
            strengths="Strong brand",
            weaknesses=[None, "", 42],
            metadata=["not", "a", "dict"],
        )
        completion = FakeCompletionClient([reply])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)

        assert result.reasoning == "Industry fits. Size fits."
        assert result.recommendation == "{'next': 'call'}"
        assert result.strengths == ["Strong brand"]
        assert result.weaknesses == ["42"]
        assert result.metadata is None

    @pytest.mark.asyncio
    async def test_empty_response_gets_defaults(self):
        completion = FakeCompletionClient([{}])
        result = await ProspectQualifier(completion).qualify(PROSPECT, ICP)

        assert result.score == 0
        assert result.fit_level is FitLevel.POOR
        assert result.reasoning == "No reasoning provided"
        assert result.strengths == []
        assert result.weaknesses == []
        assert result.recommendation == "Review manually"
        assert result.metadata is None

    @pytest.mark.asyncio
    async def test_prompt_includes_icp_and_personas(self):
        completion = FakeCompletionClient([qualification_reply(50)])
        await ProspectQualifier(completion).qualify(PROSPECT, ICP)

        prompt = completion.calls[0]["user"]
        assert "Name: Linear" in prompt
        assert "Revenue Range: $10.0M - $200.0M" in prompt
        assert "- Engineering Leader (VP Engineering in Engineering)" in prompt
        assert "- 90-100: Excellent fit" in prompt
        assert "- 0-49: Poor fit" in prompt

    @pytest.mark.asyncio
    async def test_completion_failure_raises(self):
        completion = FakeCompletionClient([AppError.external_service("OpenAI")])
        with pytest.raises(QualificationError, match="Failed to qualify prospect"):
            await ProspectQualifier(completion).qualify(PROSPECT, ICP)
