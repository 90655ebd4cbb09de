"""
Domain Scraper
==============
Turns a domain into a CompanyInfo:
  1. Cache lookup ("company:<domain>")
  2. Fetch the homepage and extract title / meta / h1 / paragraphs
  3. Ask the LLM to summarize the company from that content
  4. Fall back to an LLM guess from the domain alone, then to a
     synthetic record

analyze_domain() never raises.
"""

from typing import Any, Dict, Optional

import httpx
import structlog
from bs4 import BeautifulSoup

from ..cache import TTLCache
from ..config.settings import CACHE_CONFIG, SCRAPER_CONFIG
from ..models.schemas import CompanyInfo
from .completion import CompletionClient, as_text, parse_json_response

logger = structlog.get_logger(__name__)

DEFAULT_INDUSTRY = "Technology"

ANALYZE_SYSTEM_PROMPT = """You are an expert at analyzing companies and understanding their business models.
Based on website content, extract key information about what the company does, who they serve, and their industry.
Always return valid JSON."""

GUESS_SYSTEM_PROMPT = (
    "You are an expert at analyzing companies. Based on a domain name, make "
    "educated guesses about the company. Always respond in JSON format."
)


class ScrapeError(Exception):
    """The website could not be fetched"""


class DomainScraper:
    """
    Scrapes a company website and summarizes it with the LLM.
    """

    def __init__(
        self,
        completion_client: CompletionClient,
        cache: TTLCache,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            completion_client: LLM wrapper used for summaries and guesses
            cache: Shared TTL cache owned by the host process
            http_client: Optional shared client; one is created per fetch otherwise
        """
        self.completion_client = completion_client
        self.cache = cache
        self.http_client = http_client

    async def analyze_domain(self, domain: str) -> CompanyInfo:
        cache_key = f"{CACHE_CONFIG['key_prefixes']['company']}{domain}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for domain", domain=domain)
            return cached

        try:
            page = await self._fetch_page(domain)
            response = await self.completion_client.complete(
                ANALYZE_SYSTEM_PROMPT,
                self._analysis_prompt(domain, page),
                json_mode=True,
            )
            info = self._build_company_info(
                parse_json_response(response),
                domain,
                fallback_description=page["meta_description"],
            )
        except Exception as e:
            logger.warning(
                "Error scraping domain, using AI fallback", domain=domain, error=str(e)
            )
            return await self._guess_from_domain(domain, cache_key)

        self.cache.set(cache_key, info)
        return info

    # =========================================================================
    # Fetching & extraction
    # =========================================================================

    async def _fetch_page(self, domain: str) -> Dict[str, str]:
        """Fetch the site's homepage and extract the text fields"""
        url = domain if domain.startswith("http") else f"https://{domain}"

        if self.http_client is not None:
            response = await self._get(self.http_client, url)
        else:
            async with build_http_client() as client:
                response = await self._get(client, url)

        if response.status_code >= 500:
            raise ScrapeError(f"HTTP {response.status_code} from {url}")
        if response.status_code >= 400:
            logger.debug(
                "Client error page, extracting anyway",
                domain=domain,
                status=response.status_code,
            )

        return extract_page_content(response.text)

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.get(
            url,
            headers=_request_headers(),
            timeout=SCRAPER_CONFIG["timeout_seconds"],
            follow_redirects=True,
        )

    # =========================================================================
    # LLM prompts
    # =========================================================================

    def _analysis_prompt(self, domain: str, page: Dict[str, str]) -> str:
        return f"""Analyze this company website and provide a structured summary in JSON format:

Website: {domain}
Title: {page["title"]}
Meta Description: {page["meta_description"]}
Main Heading: {page["heading"]}
Content: {page["content"]}

Return a JSON response with the following structure:
{{
  "name": "Company name",
  "description": "Clear 2-3 sentence description of what the company does",
  "industry": "Primary industry/vertical",
  "additionalContext": "Any relevant additional context about their target market or unique value proposition"
}}
"""

    async def _guess_from_domain(self, domain: str, cache_key: str) -> CompanyInfo:
        """Second chance: let the model guess from the domain string only"""
        user_prompt = f"""Based on the domain "{domain}", provide your best estimate in JSON format:

{{
  "name": "Likely company name",
  "description": "What this company likely does (2-3 sentences)",
  "industry": "Most likely industry",
  "additionalContext": "Additional context or assumptions"
}}

Return valid JSON only."""

        try:
            response = await self.completion_client.complete(
                GUESS_SYSTEM_PROMPT, user_prompt, json_mode=True
            )
            info = self._build_company_info(parse_json_response(response), domain)
        except Exception as e:
            logger.warning("AI fallback failed, using synthetic company", domain=domain, error=str(e))
            return CompanyInfo(
                name=domain,
                description=f"Company at {domain}",
                industry=DEFAULT_INDUSTRY,
            )

        self.cache.set(cache_key, info)
        return info

    def _build_company_info(
        self,
        data: Dict[str, Any],
        domain: str,
        fallback_description: str = "",
    ) -> CompanyInfo:
        additional_context = data.get("additionalContext")
        return CompanyInfo(
            name=as_text(data.get("name")) or domain,
            description=(
                as_text(data.get("description"))
                or fallback_description
                or "No description available"
            ),
            industry=as_text(data.get("industry")) or DEFAULT_INDUSTRY,
            additional_context=as_text(additional_context) or None,
        )


def build_http_client() -> httpx.AsyncClient:
    """HTTP client with the scraper's timeout, redirect limit and browser headers"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(SCRAPER_CONFIG["timeout_seconds"]),
        follow_redirects=True,
        max_redirects=SCRAPER_CONFIG["max_redirects"],
        headers=_request_headers(),
    )


def _request_headers() -> Dict[str, str]:
    return {"User-Agent": SCRAPER_CONFIG["user_agent"], **SCRAPER_CONFIG["headers"]}


def extract_page_content(html: str) -> Dict[str, str]:
    """
    Pull title, meta description, first h1 and leading paragraphs from markup.

    Only the first max_paragraphs <p> elements are considered; of those,
    texts longer than min_paragraph_length are kept.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title = _tag_text(soup.title) if soup.title else ""

    meta = soup.find("meta", attrs={"name": "description"})
    meta_description = (meta.get("content") or "").strip() if meta else ""

    h1 = soup.find("h1")
    heading = _tag_text(h1) if h1 else ""

    paragraphs = []
    for p in soup.find_all("p", limit=SCRAPER_CONFIG["max_paragraphs"]):
        text = _tag_text(p)
        if len(text) > SCRAPER_CONFIG["min_paragraph_length"]:
            paragraphs.append(text)
    content = " ".join(paragraphs)[: SCRAPER_CONFIG["max_content_length"]]

    return {
        "title": title,
        "meta_description": meta_description or "",
        "heading": heading,
        "content": content,
    }



def _tag_text(tag) -> str:
    """Visible text of a tag with runs of whitespace collapsed to one space"""
    return " ".join(tag.get_text(" ").split())
