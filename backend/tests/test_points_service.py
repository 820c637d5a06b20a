import pytest

from fanhub.services.points_service import (
    award_points,
    level_badges,
    level_from_points,
    level_progress,
    level_threshold,
    level_title,
    points_for_level,
)


def test_points_for_level():
    assert [points_for_level(n) for n in (1, 2, 3, 4)] == [100, 150, 225, 337]


def test_level_from_points_boundaries():
    assert level_from_points(0) == 1
    assert level_from_points(99) == 1
    assert level_from_points(100) == 2
    assert level_from_points(249) == 2
    assert level_from_points(250) == 3
    assert level_threshold(4) == 475


def test_level_titles():
    assert level_title(1) == "Newcomer"
    assert level_title(5) == "Bronze Member"
    assert level_title(12) == "Silver Star"
    assert level_title(20) == "Gold Champion"
    assert level_title(73) == "Platinum Legend"


def test_level_badges():
    assert level_badges(4) == []
    assert level_badges(10) == ["BRONZE_MEMBER", "SILVER_MEMBER"]


def test_award_points_without_level_up():
    result = award_points(0, "CREATE_POST")

    assert (result.awarded, result.total, result.level, result.leveled_up) == (10, 10, 1, False)
    assert result.new_badges == []
    assert result.message == "+10 points"


def test_award_points_level_up_grants_badge():
    # Level 5 starts at 100 + 150 + 225 + 337 = 812 points
    result = award_points(800, "POST_WITH_MEDIA")

    assert result.previous_level == 4
    assert result.level == 5
    assert result.leveled_up
    assert result.title == "Bronze Member"
    assert result.new_badges == ["BRONZE_MEMBER"]


def test_award_points_unknown_action():
    with pytest.raises(ValueError):
        award_points(0, "HACK_THE_PLANET")


def test_level_progress():
    progress = level_progress(175)

    assert progress == {
        "points": 175,
        "level": 2,
        "title": "Newcomer",
        "points_in_level": 75,
        "points_needed": 150,
        "progress": 50.0,
    }
