"""
Shopping cart — at most one item per role, plus a role coverage report.
"""

import logging

from skinplan.schemas import CartItem, PlanPicks

logger = logging.getLogger(__name__)

CART_ROLES = ("cleanser", "moisturizer", "spf", "barrier", "activeA", "activeB")


def _role_products(picks: PlanPicks) -> list[tuple[str, str | None]]:
    actives = picks.actives
    return [
        ("cleanser", picks.cleanser),
        ("moisturizer", picks.moisturizer),
        ("spf", picks.spf),
        ("barrier", picks.barrier),
        ("activeA", actives[0] if actives else None),
        ("activeB", actives[1] if len(actives) > 1 else None),
    ]


def build_cart(picks: PlanPicks) -> tuple[list[CartItem], dict[str, bool]]:
    cart: list[CartItem] = []
    for role, name in _role_products(picks):
        if name and not any(item.role == role for item in cart):
            cart.append(CartItem(role=role, name=name))

    filled = {item.role for item in cart}
    coverage = {role: role in filled for role in CART_ROLES}

    missing = [role for role, ok in coverage.items() if not ok]
    if missing:
        logger.info(f"Cart incomplete | Missing roles: {missing}")
    return cart, coverage
