"""Default storefront categories.

Seeded on demand by ``CategoryTree.seed_defaults``; slugs line up with
the product category values so products join onto these nodes.
"""

from typing import Any

DEFAULT_CATEGORIES: list[dict[str, Any]] = [
    {
        "name": "Milk",
        "description": "Fresh milk and milk products",
        "icon": "🥛",
        "display_order": 1,
        "metadata": {"color": "#2196F3"},
    },
    {
        "name": "Ghee",
        "description": "Pure clarified butter",
        "icon": "🫕",
        "display_order": 2,
        "metadata": {"color": "#FF9800"},
    },
    {
        "name": "Curd",
        "description": "Fresh yogurt and curd products",
        "icon": "🍶",
        "display_order": 3,
        "metadata": {"color": "#4CAF50"},
    },
    {
        "name": "Paneer",
        "description": "Fresh cottage cheese",
        "icon": "🧀",
        "display_order": 4,
        "metadata": {"color": "#795548"},
    },
    {
        "name": "Butter",
        "description": "Fresh butter and spreads",
        "icon": "🧈",
        "display_order": 5,
        "metadata": {"color": "#FFEB3B"},
    },
    {
        "name": "Cheese",
        "description": "Various cheese products",
        "icon": "🧀",
        "display_order": 6,
        "metadata": {"color": "#FF5722"},
    },
    {
        "name": "Cream",
        "description": "Fresh cream and malai",
        "icon": "🍦",
        "display_order": 7,
        "metadata": {"color": "#FFFFFF"},
    },
    {
        "name": "Buttermilk",
        "description": "Fresh chaas and buttermilk",
        "icon": "🥤",
        "display_order": 8,
        "metadata": {"color": "#9C27B0"},
    },
]
