"""
Periodic job to refresh portfolio prices.

Walks every stored portfolio and refreshes card prices through the shared
price resolver, so the pricing budget and cache are honored exactly as
for interactive requests. Stops early once the daily budget is spent.

The job runs as a background task of the API process (see
``pokevault.main``). The pricing budget and the caches live in process
memory, so a separate process would get a budget of its own.
"""

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from pokevault.db.database import async_session_factory
from pokevault.db.operations import list_portfolio_user_ids
from pokevault.models.failure import KnownError
from pokevault.services.cache import sweep_caches
from pokevault.services.history import get_history_synthesizer
from pokevault.services.image_resolver import get_image_resolver
from pokevault.services.portfolio import PortfolioService
from pokevault.services.price_resolver import get_price_resolver

logger = logging.getLogger(__name__)


async def refresh_portfolio(user_id: str) -> tuple[int, int]:
    """
    Refresh one user's portfolio in its own transaction.

    Returns:
        Tuple of (updated, skipped). (0, 0) if the refresh failed.
    """
    async with async_session_factory() as session:
        service = PortfolioService(
            session,
            price_resolver=get_price_resolver(),
            image_resolver=get_image_resolver(),
            history=get_history_synthesizer(),
        )
        try:
            summary = await service.refresh_prices(user_id)
            await session.commit()
        except KnownError as e:
            await session.rollback()
            logger.error("Refresh failed for %s: %s", user_id, e.message)
            return 0, 0
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Database error refreshing %s: %s", user_id, e)
            return 0, 0

    logger.info("%s: %s", user_id, summary.message)
    return summary.updated, summary.skipped


async def run_price_refresh(user_ids: list[str] | None = None) -> dict[str, tuple[int, int]]:
    """
    Refresh prices for all or the given portfolios.

    Args:
        user_ids: Portfolios to refresh. If None, refreshes every portfolio.

    Returns:
        Dict mapping user ID to (updated, skipped)
    """
    if user_ids is None:
        async with async_session_factory() as session:
            user_ids = await list_portfolio_user_ids(session)

    limiter = get_price_resolver().limiter
    results: dict[str, tuple[int, int]] = {}

    for user_id in user_ids:
        if not limiter.can_proceed():
            logger.warning(
                "Pricing budget exhausted; %d portfolios left", len(user_ids) - len(results)
            )
            break
        results[user_id] = await refresh_portfolio(user_id)

    removed = sweep_caches()
    total = sum(updated for updated, _ in results.values())
    logger.info(
        "Price refresh complete. %d cards updated across %d portfolios, %d cache entries swept",
        total,
        len(results),
        removed,
    )
    return results


async def run_periodic_refresh(interval_seconds: float) -> None:
    """
    Refresh prices every ``interval_seconds`` until cancelled.

    The first run happens one interval after startup. A database failure
    ends that run only; the loop keeps going.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        logger.info("Starting scheduled price refresh")
        try:
            await run_price_refresh()
        except SQLAlchemyError as e:
            logger.error("Scheduled price refresh failed: %s", e)
