"""Link store: single-statement queries against the ``links`` table."""
import logging
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from codes import generate_short_code
from models import Link

MAX_CODE_ATTEMPTS = 10

logger = logging.getLogger("url_shortener")


class CodeGenerationError(Exception):
    """Raised when no free short code was found within the attempt cap."""


async def get_link_by_code(db: AsyncSession, code: str) -> Optional[Link]:
    result = await db.execute(select(Link).where(Link.short_code == code))
    return result.scalar()


async def code_exists(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Link.id).where(Link.short_code == code))
    return result.first() is not None


async def insert_link(db: AsyncSession, code: str, url: str) -> Link:
    link = Link(short_code=code, original_url=url, clicks=0)
    db.add(link)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    await db.refresh(link)
    return link


async def increment_clicks(db: AsyncSession, code: str) -> None:
    await db.execute(
        update(Link).where(Link.short_code == code).values(clicks=Link.clicks + 1)
    )
    await db.commit()


def _search_filter(search: str):
    return or_(
        Link.short_code.icontains(search, autoescape=True),
        Link.original_url.icontains(search, autoescape=True),
    )


async def count_links(db: AsyncSession, search: Optional[str] = None) -> int:
    query = select(func.count(Link.id))
    if search:
        query = query.where(_search_filter(search))
    result = await db.execute(query)
    return result.scalar() or 0


async def list_links(db: AsyncSession, limit: int, offset: int,
                     search: Optional[str] = None) -> List[Link]:
    query = select(Link)
    if search:
        query = query.where(_search_filter(search))
    query = query.order_by(Link.created_at.desc(), Link.id.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def total_clicks(db: AsyncSession) -> int:
    result = await db.execute(select(func.coalesce(func.sum(Link.clicks), 0)))
    return result.scalar() or 0


async def create_link(db: AsyncSession, url: str, max_attempts: int = MAX_CODE_ATTEMPTS) -> Link:
    """Store ``url`` under a freshly generated short code.

    The existence check and the insert are separate statements, so two
    requests can still pick the same candidate. The UNIQUE constraint catches
    that case and the loser retries with a new code until the cap is hit.
    """
    for attempt in range(1, max_attempts + 1):
        code = generate_short_code()
        if await code_exists(db, code):
            logger.debug(f"Short code collision on attempt {attempt}: {code}")
            continue
        try:
            return await insert_link(db, code, url)
        except IntegrityError:
            logger.warning(f"Short code {code} was taken concurrently (attempt {attempt})")
    raise CodeGenerationError("Failed to generate unique short code")
