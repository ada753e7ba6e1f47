from pokevault.db.database import get_session, init_db
from pokevault.db.operations import (
    add_portfolio_card,
    card_to_model,
    create_portfolio,
    find_card,
    find_duplicate_card,
    get_or_create_portfolio,
    get_portfolio,
    list_portfolio_user_ids,
    remove_portfolio_card,
    touch_portfolio,
    update_card_quantity,
)

__all__ = [
    "add_portfolio_card",
    "card_to_model",
    "create_portfolio",
    "find_card",
    "find_duplicate_card",
    "get_or_create_portfolio",
    "get_portfolio",
    "get_session",
    "init_db",
    "list_portfolio_user_ids",
    "remove_portfolio_card",
    "touch_portfolio",
    "update_card_quantity",
]
