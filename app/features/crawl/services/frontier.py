import asyncio
from typing import List, Optional
from urllib.parse import urlparse

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.features.crawl.models.frontier_entry import FrontierEntry
from app.features.crawl.schemas.crawl import FrontierEntryRead
from app.platform.db.session import SessionLocal
from app.platform.logger import get_logger
from app.platform.utils.url_validator import canonicalize_url, is_same_domain

logger = get_logger(__name__)


class FrontierService:
    """
    Domain-scoped, deduplicated queue of URLs to visit.

    Every operation opens its own database session so concurrent crawl tasks
    never share one. URLs are canonicalized before they reach the store.
    """

    def __init__(self, session_factory: async_sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self._claim_lock = asyncio.Lock()

    async def reset_domain(self, domain: str) -> int:
        """Delete every entry of a domain; returns the number removed."""
        async with self.session_factory() as db:
            result = await db.execute(delete(FrontierEntry).where(FrontierEntry.domain == domain))
            await db.commit()

        if result.rowcount:
            logger.info(f"Reset frontier for {domain}: removed {result.rowcount} entries")
        return result.rowcount or 0

    async def seed(self, url: str, domain: str) -> bool:
        """Insert the seed URL as unvisited if absent."""
        return await self.discover(url, None, domain)

    async def discover(self, url: str, parent_url: Optional[str], domain: str) -> bool:
        """
        Idempotent insert of a discovered URL.

        URLs that do not canonicalize or that belong to another domain are
        dropped without touching the store. Discovered links take the scheme
        of the page they were found on.

        Returns:
            True if a new entry was created, False if it already existed or
            was rejected
        """
        scheme = urlparse(parent_url).scheme if parent_url else None
        canonical = canonicalize_url(url, base=parent_url, scheme=scheme)
        if canonical is None or not is_same_domain(canonical, domain):
            return False

        async with self.session_factory() as db:
            stmt = self._insert_ignore(db).values(
                domain=domain,
                url=canonical,
                parent_url=parent_url,
                visited=False,
                failed=False,
            ).on_conflict_do_nothing(index_elements=["domain", "url"])
            result = await db.execute(stmt)
            await db.commit()

        return bool(result.rowcount)

    async def claim_batch(self, domain: str, n: int, claimant: str) -> List[FrontierEntryRead]:
        """
        Atomically claim up to ``n`` unvisited, unclaimed entries in discovery order.

        No two callers ever receive the same entry: claims are serialized in
        process and rows are locked (SKIP LOCKED) where the database supports it.
        """
        async with self._claim_lock:
            async with self.session_factory() as db:
                query = (
                    select(FrontierEntry)
                    .where(
                        FrontierEntry.domain == domain,
                        FrontierEntry.visited.is_(False),
                        FrontierEntry.claimed_by.is_(None),
                    )
                    .order_by(FrontierEntry.discovered_at, FrontierEntry.id)
                    .limit(n)
                    .with_for_update(skip_locked=True)
                )
                entries = (await db.execute(query)).scalars().all()
                if not entries:
                    return []

                ids = [entry.id for entry in entries]
                await db.execute(
                    update(FrontierEntry)
                    .where(FrontierEntry.id.in_(ids), FrontierEntry.claimed_by.is_(None))
                    .values(claimed_by=claimant)
                )
                await db.commit()

                claimed = []
                for entry in entries:
                    snapshot = FrontierEntryRead.model_validate(entry)
                    claimed.append(snapshot.model_copy(update={"claimed_by": claimant}))

        logger.debug(f"Claimed {len(claimed)} entries for {domain}")
        return claimed

    async def mark_visited(
        self, url: str, domain: str, failed: bool = False, error: Optional[str] = None
    ) -> bool:
        """
        Flip the visited flag. Idempotent: a second call is a no-op.

        Returns:
            True only for the call that actually marked the entry
        """
        canonical = canonicalize_url(url) or url

        async with self.session_factory() as db:
            result = await db.execute(
                update(FrontierEntry)
                .where(
                    FrontierEntry.domain == domain,
                    FrontierEntry.url == canonical,
                    FrontierEntry.visited.is_(False),
                )
                .values(visited=True, failed=failed, error_message=error)
            )
            await db.commit()

        return result.rowcount == 1

    async def remaining_count(self, domain: str) -> int:
        return await self._count(domain, visited=False)

    async def processed_count(self, domain: str) -> int:
        return await self._count(domain, visited=True)

    async def pending_urls(self, domain: str) -> List[FrontierEntryRead]:
        """Unvisited entries of a domain, for inspection."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(FrontierEntry)
                .where(FrontierEntry.domain == domain, FrontierEntry.visited.is_(False))
                .order_by(FrontierEntry.discovered_at, FrontierEntry.id)
            )
            return [FrontierEntryRead.model_validate(entry) for entry in result.scalars().all()]

    async def _count(self, domain: str, visited: bool) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count())
                .select_from(FrontierEntry)
                .where(FrontierEntry.domain == domain, FrontierEntry.visited.is_(visited))
            )
            return result.scalar_one()

    @staticmethod
    def _insert_ignore(db: AsyncSession):
        """Dialect-specific INSERT that supports ON CONFLICT DO NOTHING."""
        dialect = db.bind.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(FrontierEntry.__table__)
        if dialect == "sqlite":
            return sqlite.insert(FrontierEntry.__table__)
        raise NotImplementedError(f"Frontier store does not support the {dialect} dialect")
