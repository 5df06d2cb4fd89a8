"""Tests for item category classification and airport milestone detection."""

import pytest

from backend.app.models.common import Milestone, SpendCategory
from backend.app.models.plan import Item
from backend.app.reconciliation.classifier import classify_item, item_text, milestone_of


def _item(place: str = "", activity: str = "", notes: str | None = None, **kwargs: object) -> Item:
    return Item(time="10:00", place=place, activity=activity, notes=notes, **kwargs)


class TestClassifyItem:
    """Ordered rules: breakfast, meals, lodging, then activities."""

    def test_hotel_breakfast_is_food_not_lodging(self) -> None:
        assert classify_item(_item("Lotte Hotel", "호텔 조식")) == SpendCategory.food_and_drink
        assert classify_item(_item("Grand Hotel", "Hotel breakfast buffet")) == SpendCategory.food_and_drink

    def test_meal_keywords_are_food(self) -> None:
        assert classify_item(_item("Myeongdong", "Lunch")) == SpendCategory.food_and_drink
        assert classify_item(_item("광장시장", "저녁 식사")) == SpendCategory.food_and_drink
        assert classify_item(_item("Blue Bottle", "Coffee break")) == SpendCategory.food_and_drink

    def test_lodging_keywords(self) -> None:
        assert classify_item(_item("Lotte Hotel", "Check-in")) == SpendCategory.lodging
        assert classify_item(_item("숙소", "체크인")) == SpendCategory.lodging
        assert classify_item(_item("Hostel Korea", "Drop bags")) == SpendCategory.lodging

    def test_everything_else_is_activity(self) -> None:
        assert classify_item(_item("Gyeongbokgung", "Palace tour")) == SpendCategory.activities
        assert classify_item(_item("", "")) == SpendCategory.activities

    def test_keywords_are_word_bounded(self) -> None:
        # "barbican" must not trigger the "bar" meal rule
        assert classify_item(_item("Barbican Centre", "Exhibition")) == SpendCategory.activities

    def test_notes_participate(self) -> None:
        item = _item("Han River Park", "Picnic", notes="bring snacks")
        assert classify_item(item) == SpendCategory.food_and_drink

    def test_links_are_ignored(self) -> None:
        item = _item(
            "Gyeongbokgung",
            "Palace tour",
            official_website_link="https://hotel-booking.example/lunch",
        )
        assert classify_item(item) == SpendCategory.activities

    def test_classification_follows_text_changes(self) -> None:
        item = _item("Lotte Hotel", "Check-in")
        edited = item.model_copy(update={"activity": "Dinner at the hotel"})
        assert classify_item(item) == SpendCategory.lodging
        assert classify_item(edited) == SpendCategory.food_and_drink


def test_item_text_normalizes_whitespace_and_case() -> None:
    item = _item("  N Seoul   Tower ", "Night VIEW", notes="Cable\tcar")
    assert item_text(item) == "n seoul tower night view cable car"


class TestMilestoneOf:
    """Airport milestone detection."""

    def test_explicit_tag_wins(self) -> None:
        item = _item("Somewhere", "Anything", milestone=Milestone.airport_transfer)
        assert milestone_of(item) == Milestone.airport_transfer

    @pytest.mark.parametrize(
        ("place", "activity", "expected"),
        [
            ("Incheon Airport", "Arrive at airport", Milestone.airport_arrival),
            ("인천공항", "도착", Milestone.airport_arrival),
            ("Incheon Airport", "Head to airport for departure", Milestone.airport_departure),
            ("Airport Railroad", "Transfer from airport to city", Milestone.airport_transfer),
        ],
    )
    def test_detects_from_text(self, place: str, activity: str, expected: Milestone) -> None:
        assert milestone_of(_item(place, activity)) == expected

    def test_non_airport_items_have_no_milestone(self) -> None:
        assert milestone_of(_item("Seoul Station", "Departure by KTX")) is None
        assert milestone_of(_item("Airport Mall", "Shopping")) is None
