from pokevault.api.cards import router as cards_router
from pokevault.api.health import router as health_router
from pokevault.api.portfolio import router as portfolio_router
from pokevault.api.sets import router as sets_router

__all__ = [
    "cards_router",
    "health_router",
    "portfolio_router",
    "sets_router",
]
