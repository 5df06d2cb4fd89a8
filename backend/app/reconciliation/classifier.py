"""Category classification for itinerary items.

Ordered text rules over the item's place, activity and notes. Enrichment
links are never consulted. Rules, first match wins:

1. breakfast-class keyword        -> food_and_drink
2. any other meal/dining keyword  -> food_and_drink
3. lodging keyword                -> lodging
4. anything else                  -> activities

Breakfast is checked before lodging so "hotel breakfast" stays a meal.
"""

import re

from backend.app.models.common import Milestone, SpendCategory
from backend.app.models.plan import Item


def _rules(english: list[str], korean: list[str]) -> re.Pattern[str]:
    """Word-bounded English patterns plus plain Korean substrings."""
    parts = [rf"\b(?:{word})\b" for word in english] + [re.escape(word) for word in korean]
    return re.compile("|".join(parts))


BREAKFAST = _rules(
    ["breakfast(?:es)?", "brunch(?:es)?", "morning meal"],
    ["조식", "아침 식사", "아침식사", "브런치"],
)

MEALS = _rules(
    [
        "lunch(?:es)?",
        "dinner(?:s)?",
        "supper",
        "snack(?:s)?",
        "caf[eé](?:s)?",
        "coffee",
        "restaurant(?:s)?",
        "dessert(?:s)?",
        "drink(?:s|ing)?",
        "bar(?:s)?",
        "pub(?:s)?",
        "meal(?:s)?",
        "dining",
        "dine",
        "food",
        "bakery",
        "street food",
    ],
    ["점심", "저녁", "식사", "간식", "카페", "커피", "레스토랑", "식당", "디저트", "음료", "맛집", "술집", "먹거리"],
)

LODGING = _rules(
    [
        "hotel(?:s)?",
        "hostel(?:s)?",
        "guest ?house(?:s)?",
        "resort(?:s)?",
        "check[- ]?in",
        "check[- ]?out",
        "accommodation(?:s)?",
        "stay",
        "ryokan",
        "motel",
    ],
    ["호텔", "호스텔", "게스트하우스", "리조트", "숙소", "숙박", "체크인", "체크아웃", "료칸"],
)

_AIRPORT = _rules(["airport"], ["공항"])
_ARRIVAL = _rules(["arriv(?:e|es|al|ing)", "land(?:ing|s)?", "immigration"], ["도착", "입국"])
_TO_AIRPORT = _rules(["to (?:the )?airport", "depart(?:s|ure|ing)?", "flight home", "boarding"], ["공항으로", "출국", "출발", "탑승"])
_FROM_AIRPORT = _rules(["from (?:the )?airport", "to (?:the )?city", "transfer"], ["공항에서", "시내로", "이동"])


def item_text(item: Item) -> str:
    """Normalized lowercase text used for every rule."""
    text = " ".join(part for part in (item.place, item.activity, item.notes or "") if part)
    return " ".join(text.lower().split())


def classify_item(item: Item) -> SpendCategory:
    """Classify one item into lodging, food_and_drink or activities."""
    text = item_text(item)
    if BREAKFAST.search(text):
        return SpendCategory.food_and_drink
    if MEALS.search(text):
        return SpendCategory.food_and_drink
    if LODGING.search(text):
        return SpendCategory.lodging
    return SpendCategory.activities


def milestone_of(item: Item) -> Milestone | None:
    """Airport milestone carried by an item, explicit tag first, then text."""
    if item.milestone is not None:
        return item.milestone

    text = item_text(item)
    if not _AIRPORT.search(text):
        return None
    if _ARRIVAL.search(text):
        return Milestone.airport_arrival
    if _TO_AIRPORT.search(text):
        return Milestone.airport_departure
    if _FROM_AIRPORT.search(text):
        return Milestone.airport_transfer
    return None
