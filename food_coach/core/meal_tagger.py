import re
from datetime import datetime
from typing import Literal, Optional, TypedDict

from food_coach.core.time_utils import now, time_of_day

CarbLevel = Literal["low", "medium", "high"]
TimeOfDay = Literal["morning", "noon", "evening", "late"]


class MealTags(TypedDict):
    protein: bool
    veggies: bool
    carbs: CarbLevel
    junk: bool
    timeOfDay: TimeOfDay


PROTEIN_KEYWORDS = [
    "chicken", "beef", "pork", "fish", "salmon", "tuna", "egg", "eggs",
    "protein", "meat", "turkey", "lamb", "tofu", "beans", "lentils",
    "cheese", "yogurt", "milk", "nuts", "almonds", "peanuts",
    "quinoa", "cottage cheese", "greek yogurt", "protein shake",
]

VEGGIE_KEYWORDS = [
    "salad", "vegetables", "veggies", "broccoli", "spinach", "lettuce",
    "tomato", "cucumber", "carrot", "peppers", "onion", "garlic",
    "mushroom", "zucchini", "eggplant", "cabbage", "kale", "arugula",
    "avocado", "asparagus", "celery", "radish", "beets", "green",
]

LOW_CARB_KEYWORDS = [
    "salad", "vegetables", "veggies", "protein", "meat", "fish",
    "eggs", "cheese", "nuts", "avocado", "leafy greens",
]

MEDIUM_CARB_KEYWORDS = [
    "quinoa", "sweet potato", "fruit", "apple", "banana", "berries",
    "oats", "oatmeal", "yogurt", "milk", "beans", "lentils",
]

HIGH_CARB_KEYWORDS = [
    "bread", "pasta", "rice", "pizza", "sandwich", "bagel", "cereal",
    "pancakes", "waffles", "muffin", "cake", "cookies", "potatoes",
    "fries", "chips", "crackers", "noodles", "spaghetti",
]

JUNK_KEYWORDS = [
    "pizza", "burger", "fries", "chips", "soda", "coke", "candy",
    "chocolate", "ice cream", "cookies", "cake", "donut", "fast food",
    "mcdonalds", "kfc", "dominos", "fried", "deep fried", "energy drink",
]


def _contains_any(text: str, keywords: list[str]) -> bool:
    # Substring match, so "eggs" also hits "egg" and "stir-fried" hits "fried".
    return any(keyword in text for keyword in keywords)


def detect_carbs(text: str) -> CarbLevel:
    if _contains_any(text, HIGH_CARB_KEYWORDS):
        return "high"
    if _contains_any(text, MEDIUM_CARB_KEYWORDS):
        return "medium"
    if _contains_any(text, LOW_CARB_KEYWORDS):
        return "low"
    return "medium"


def tag_meal_text(text: str, timestamp: Optional[datetime] = None) -> MealTags:
    normalized = re.sub(r"\s+", " ", (text or "").lower().strip())
    timestamp = timestamp or now()
    return {
        "protein": _contains_any(normalized, PROTEIN_KEYWORDS),
        "veggies": _contains_any(normalized, VEGGIE_KEYWORDS),
        "carbs": detect_carbs(normalized),
        "junk": _contains_any(normalized, JUNK_KEYWORDS),
        "timeOfDay": time_of_day(timestamp.hour),
    }
