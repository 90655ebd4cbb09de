"""
Configuration settings for ICP Builder
"""

from typing import List
import os

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# APPLICATION
# =============================================================================

VALID_ENVIRONMENTS = ("development", "production", "test")

APP_CONFIG = {
    "environment": os.getenv("APP_ENV", "development"),
    "service_name": "ICP Builder",
    "version": "1.0.0",
}

# =============================================================================
# LLM CONFIGURATION
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openai"),  # openai, openrouter
    "model": os.getenv("LLM_MODEL", "gpt-4-turbo-preview"),
    "api_key": os.getenv("OPENAI_API_KEY") or os.getenv("OPENROUTER_API_KEY", ""),
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "temperature": 0.7,
    "timeout_seconds": 30.0,
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "ICP Builder"),
}

# =============================================================================
# SCRAPER CONFIGURATION
# =============================================================================

SCRAPER_CONFIG = {
    "timeout_seconds": 10.0,
    "max_redirects": 5,
    "max_paragraphs": 5,
    "min_paragraph_length": 20,
    "max_content_length": 1000,
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "headers": {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    },
}

# =============================================================================
# CACHE CONFIGURATION
# =============================================================================

CACHE_CONFIG = {
    "ttl_seconds": 5 * 60,
    "key_prefixes": {
        "company": "company:",
    },
}

# =============================================================================
# QUALIFICATION SCORE THRESHOLDS
# =============================================================================

SCORE_THRESHOLDS = {
    "excellent": 90,
    "good": 70,
    "moderate": 50,
    "min": 0,
    "max": 100,
}

# =============================================================================
# DEFAULT ICP VALUES
# =============================================================================

ICP_DEFAULTS = {
    "title": "Ideal Customer Profile",
    "description": "Generated ICP",
    "company_size_min": 50,
    "company_size_max": 5000,
    "revenue_min": 5_000_000,  # $5M
    "revenue_max": 100_000_000,  # $100M
    "industries": ["Technology"],
    "regions": ["North America"],
    "funding_stages": ["Series A", "Series B", "Series C"],
}

# =============================================================================
# VALIDATION LIMITS
# =============================================================================

VALIDATION_LIMITS = {
    "domain_min_length": 3,
    "domain_max_length": 255,
    "max_domains_per_request": 50,
    "max_personas_per_icp": 5,
    "icp_page_size": 50,
    "max_icp_page_size": 100,
}

# =============================================================================
# SUPABASE (relational store + auth provider)
# =============================================================================

SUPABASE_CONFIG = {
    "url": os.getenv("SUPABASE_URL", ""),
    "anon_key": os.getenv("SUPABASE_ANON_KEY", ""),
}

# =============================================================================
# AUTH (used when Supabase is not configured)
# =============================================================================

# DEV_AUTH_TOKENS="token1:user-1,token2:user-2"
AUTH_CONFIG = {
    "dev_tokens": dict(
        pair.split(":", 1)
        for pair in os.getenv("DEV_AUTH_TOKENS", "").split(",")
        if ":" in pair
    ),
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING_CONFIG = {
    "level": os.getenv(
        "LOG_LEVEL",
        "DEBUG" if APP_CONFIG["environment"] == "development" else "INFO",
    ),
    "json": APP_CONFIG["environment"] == "production",
}


def supabase_configured() -> bool:
    return bool(SUPABASE_CONFIG["url"] and SUPABASE_CONFIG["anon_key"])


def check_environment() -> List[str]:
    """
    Collect configuration problems.

    Development and test runs fall back to in-memory storage and a static
    token map, so only production requires the external services.
    """
    problems = []
    environment = APP_CONFIG["environment"]
    if environment not in VALID_ENVIRONMENTS:
        problems.append(
            f"APP_ENV: expected one of {', '.join(VALID_ENVIRONMENTS)}, got '{environment}'"
        )
    if environment == "production":
        if not SUPABASE_CONFIG["url"]:
            problems.append("SUPABASE_URL: Supabase URL is required")
        if not SUPABASE_CONFIG["anon_key"]:
            problems.append("SUPABASE_ANON_KEY: Supabase anon key is required")
        if not LLM_CONFIG["api_key"]:
            problems.append("OPENAI_API_KEY: LLM API key is required")
    return problems
