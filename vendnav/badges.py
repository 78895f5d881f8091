"""VendHub badge catalog and unlock evaluation.

The catalog belongs to the host app: the achievement queue only sequences
and remembers what is listed here.
"""

from .models import BadgeCategory, BadgeDefinition

LOYALTY_LEVELS = ["bronze", "silver", "gold", "platinum"]

BADGES: list[BadgeDefinition] = [
    # Orders
    BadgeDefinition("first_order", "Первый глоток", "Сделайте первый заказ",
                    "coffee", BadgeCategory.ORDERS, "text-amber-600", "bg-amber-100"),
    BadgeDefinition("regular", "Постоянный клиент", "Сделайте 10 заказов",
                    "heart", BadgeCategory.ORDERS, "text-red-500", "bg-red-100"),
    BadgeDefinition("coffee_lover", "Кофеман", "Сделайте 25 заказов",
                    "zap", BadgeCategory.ORDERS, "text-yellow-500", "bg-yellow-100"),
    BadgeDefinition("coffee_addict", "Кофейный гуру", "Сделайте 50 заказов",
                    "flame", BadgeCategory.ORDERS, "text-orange-500", "bg-orange-100"),
    BadgeDefinition("coffee_master", "Мастер кофе", "Сделайте 100 заказов",
                    "award", BadgeCategory.ORDERS, "text-purple-500", "bg-purple-100"),
    # Loyalty
    BadgeDefinition("silver_member", "Серебряный статус", "Достигните уровня Серебро",
                    "star", BadgeCategory.LOYALTY, "text-gray-400", "bg-gray-100"),
    BadgeDefinition("gold_member", "Золотой статус", "Достигните уровня Золото",
                    "crown", BadgeCategory.LOYALTY, "text-yellow-500", "bg-yellow-100"),
    BadgeDefinition("platinum_member", "Платиновый статус", "Достигните уровня Платина",
                    "trophy", BadgeCategory.LOYALTY, "text-purple-500", "bg-purple-100"),
    BadgeDefinition("points_collector", "Коллекционер баллов", "Накопите 50,000 баллов",
                    "gift", BadgeCategory.LOYALTY, "text-green-500", "bg-green-100"),
    BadgeDefinition("points_master", "Мастер баллов", "Накопите 100,000 баллов",
                    "target", BadgeCategory.LOYALTY, "text-emerald-500", "bg-emerald-100"),
    # Special
    BadgeDefinition("early_bird", "Ранняя пташка", "Зарегистрируйтесь в приложении",
                    "star", BadgeCategory.SPECIAL, "text-sky-500", "bg-sky-100"),
]

ORDER_THRESHOLDS = {
    "first_order": 1,
    "regular": 10,
    "coffee_lover": 25,
    "coffee_addict": 50,
    "coffee_master": 100,
}

POINTS_THRESHOLDS = {
    "points_collector": 50000,
    "points_master": 100000,
}

LEVEL_BADGES = {
    "silver_member": "silver",
    "gold_member": "gold",
    "platinum_member": "platinum",
}


def unlocked_badge_ids(total_orders: int, points_balance: int,
                       loyalty_level: str = "bronze") -> list[str]:
    """Ids of every badge a user with these stats has earned, in catalog order"""
    level_rank = LOYALTY_LEVELS.index(loyalty_level) if loyalty_level in LOYALTY_LEVELS else 0
    unlocked = {"early_bird"}
    unlocked.update(b for b, n in ORDER_THRESHOLDS.items() if total_orders >= n)
    unlocked.update(b for b, n in POINTS_THRESHOLDS.items() if points_balance >= n)
    unlocked.update(b for b, level in LEVEL_BADGES.items()
                    if level_rank >= LOYALTY_LEVELS.index(level))
    return [b.id for b in BADGES if b.id in unlocked]
