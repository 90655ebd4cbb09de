"""
Relational store access.

Rows are plain dicts using the table columns (companies, icps,
buyer_personas, prospects, qualifications). The store assigns ids.
"""

import asyncio
import copy
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from supabase import Client, create_client

from ..errors import AppError

logger = structlog.get_logger(__name__)

Row = Dict[str, Any]


class Repository(ABC):
    """Insert/select-by-key access to the relational store"""

    def for_token(self, token: str) -> "Repository":
        """Repository acting on behalf of the caller's access token"""
        return self

    @abstractmethod
    async def get_company_by_domain(self, domain: str) -> Optional[Row]:
        ...

    @abstractmethod
    async def insert_company(self, row: Row) -> Row:
        ...

    @abstractmethod
    async def get_icp(self, icp_id: str) -> Optional[Row]:
        """ICP row with its company under "companies" and personas under "buyer_personas" """

    @abstractmethod
    async def list_icps(self, user_id: str, limit: int) -> List[Row]:
        """The user's ICPs with their company under "companies", newest first"""

    @abstractmethod
    async def get_icp_for_company(self, company_id: str) -> Optional[Row]:
        """ICP row with its personas under "buyer_personas" """

    @abstractmethod
    async def insert_icp(self, row: Row) -> Row:
        ...

    @abstractmethod
    async def insert_personas(self, rows: List[Row]) -> List[Row]:
        ...

    @abstractmethod
    async def insert_prospect(self, row: Row) -> Row:
        ...

    @abstractmethod
    async def insert_qualification(self, row: Row) -> Row:
        ...


# =============================================================================
# In-memory store (development & tests)
# =============================================================================

class InMemoryRepository(Repository):
    """
    Dict-backed store. Data is lost on restart; use Supabase in production.
    """

    def __init__(self):
        self.tables: Dict[str, Dict[str, Row]] = {
            "companies": {},
            "icps": {},
            "buyer_personas": {},
            "prospects": {},
            "qualifications": {},
        }

    def _insert(self, table: str, row: Row) -> Row:
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.tables[table][stored["id"]] = stored
        return copy.deepcopy(stored)

    def _with_personas(self, icp: Row) -> Row:
        result = copy.deepcopy(icp)
        result["buyer_personas"] = [
            copy.deepcopy(p)
            for p in self.tables["buyer_personas"].values()
            if p["icp_id"] == icp["id"]
        ]
        return result

    async def get_company_by_domain(self, domain: str) -> Optional[Row]:
        for company in self.tables["companies"].values():
            if company["domain"] == domain:
                return copy.deepcopy(company)
        return None

    async def insert_company(self, row: Row) -> Row:
        if await self.get_company_by_domain(row["domain"]) is not None:
            raise AppError.conflict(f"Company {row['domain']} already exists")
        return self._insert("companies", row)

    def _company(self, icp: Row) -> Optional[Row]:
        company = self.tables["companies"].get(icp.get("company_id"))
        return copy.deepcopy(company) if company else None

    async def get_icp(self, icp_id: str) -> Optional[Row]:
        icp = self.tables["icps"].get(icp_id)
        if not icp:
            return None
        result = self._with_personas(icp)
        result["companies"] = self._company(icp)
        return result

    async def list_icps(self, user_id: str, limit: int) -> List[Row]:
        # newest insert first among equal timestamps
        owned = [
            icp
            for icp in reversed(list(self.tables["icps"].values()))
            if icp.get("user_id") == user_id
        ]
        owned.sort(key=lambda icp: icp["created_at"], reverse=True)
        return [dict(copy.deepcopy(icp), companies=self._company(icp)) for icp in owned[:limit]]

    async def get_icp_for_company(self, company_id: str) -> Optional[Row]:
        for icp in self.tables["icps"].values():
            if icp["company_id"] == company_id:
                return self._with_personas(icp)
        return None

    async def insert_icp(self, row: Row) -> Row:
        return self._insert("icps", row)

    async def insert_personas(self, rows: List[Row]) -> List[Row]:
        return [self._insert("buyer_personas", row) for row in rows]

    async def insert_prospect(self, row: Row) -> Row:
        return self._insert("prospects", row)

    async def insert_qualification(self, row: Row) -> Row:
        return self._insert("qualifications", row)


# =============================================================================
# Supabase store
# =============================================================================

class SupabaseRepository(Repository):
    """
    Supabase (PostgREST) backed store.

    The SDK is synchronous, so each query runs in a worker thread.
    """

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        self.url = url
        self.key = key
        self.client = client or create_client(url, key)

    def for_token(self, token: str) -> "SupabaseRepository":
        # per-request client so row level security applies to the caller
        client = create_client(self.url, self.key)
        client.postgrest.auth(token)
        return SupabaseRepository(self.url, self.key, client=client)

    async def _execute(self, query) -> List[Row]:
        response = await asyncio.to_thread(query.execute)
        return response.data or []

    async def _insert_one(self, table: str, row: Row) -> Row:
        rows = await self._execute(self.client.table(table).insert(row))
        if not rows:
            raise AppError.internal(f"Insert into {table} returned no rows")
        return rows[0]

    async def get_company_by_domain(self, domain: str) -> Optional[Row]:
        rows = await self._execute(
            self.client.table("companies").select("*").eq("domain", domain).limit(1)
        )
        return rows[0] if rows else None

    async def insert_company(self, row: Row) -> Row:
        return await self._insert_one("companies", row)

    async def get_icp(self, icp_id: str) -> Optional[Row]:
        rows = await self._execute(
            self.client.table("icps")
            .select("*, companies(*), buyer_personas(*)")
            .eq("id", icp_id)
            .limit(1)
        )
        return rows[0] if rows else None

    async def list_icps(self, user_id: str, limit: int) -> List[Row]:
        return await self._execute(
            self.client.table("icps")
            .select("*, companies(*)")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
        )

    async def get_icp_for_company(self, company_id: str) -> Optional[Row]:
        rows = await self._execute(
            self.client.table("icps")
            .select("*, buyer_personas(*)")
            .eq("company_id", company_id)
            .limit(1)
        )
        return rows[0] if rows else None

    async def insert_icp(self, row: Row) -> Row:
        return await self._insert_one("icps", row)

    async def insert_personas(self, rows: List[Row]) -> List[Row]:
        if not rows:
            return []
        return await self._execute(self.client.table("buyer_personas").insert(rows))

    async def insert_prospect(self, row: Row) -> Row:
        return await self._insert_one("prospects", row)

    async def insert_qualification(self, row: Row) -> Row:
        return await self._insert_one("qualifications", row)
