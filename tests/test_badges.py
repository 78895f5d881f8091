from vendnav.badges import BADGES, unlocked_badge_ids


def test_catalog_ids_are_unique():
    ids = [b.id for b in BADGES]
    assert len(ids) == len(set(ids)) == 11


def test_new_user_has_early_bird_only():
    assert unlocked_badge_ids(0, 0) == ["early_bird"]


def test_orders_and_level():
    assert unlocked_badge_ids(10, 0, "gold") == [
        "first_order",
        "regular",
        "silver_member",
        "gold_member",
        "early_bird",
    ]


def test_points():
    unlocked = unlocked_badge_ids(0, 120000)
    assert "points_collector" in unlocked
    assert "points_master" in unlocked


def test_unknown_level_counts_as_bronze():
    assert unlocked_badge_ids(0, 0, "diamond") == ["early_bird"]
