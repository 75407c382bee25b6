"""Personalized meal feedback built from the user's goal, tone and focus areas."""

from typing import Optional

from food_coach.core.config import LATE_EATING_HOUR
from food_coach.core.meal_analysis import MealAnalysis, NutrientRange
from food_coach.core.meal_tagger import MealTags
from food_coach.core.time_utils import now

JUNK_HINTS: dict[str, dict[str, str]] = {
    "friendly": {
        "fat_loss": "Treat yourself occasionally, but balance with veggies tomorrow! 🥗",
        "muscle_gain": "Junk food won't fuel your gains. Add some protein next time! 💪",
        "maintenance": "Balance is key - make your next meal nutrient-dense! ⚖️",
        "general": "We all slip sometimes. Tomorrow's a fresh start! 🌟",
    },
    "clinical": {
        "fat_loss": "High-calorie processed foods impede weight loss goals.",
        "muscle_gain": "Processed foods lack essential nutrients for muscle synthesis.",
        "maintenance": "Maintain balance by compensating with nutrient-dense foods.",
        "general": "Consider healthier alternatives for better nutritional outcomes.",
    },
    "funny": {
        "fat_loss": "That pizza won't chase itself off your hips! 🍕➡️🏃‍♀️",
        "muscle_gain": "Muscles grow on protein, not pizza! 🍕❌💪",
        "maintenance": "Balance is like a seesaw - tip it back with veggies! ⚖️🥬",
        "general": "Your body called - it wants real food! 📞🥗",
    },
}

LATE_JUNK_HINTS: dict[str, str] = {
    "friendly": "Late night treats can slow progress. Try herbal tea next time! 🌙",
    "funny": "Your metabolism went to bed already! 😴",
}

LATE_HINTS: dict[str, str] = {
    "friendly": "Late meals can affect sleep. Try lighter options after 9 PM! 🌙",
    "clinical": "Late eating may disrupt circadian rhythm and metabolism.",
    "funny": "Your digestive system wants to clock out too! ⏰😴",
}


def pick_tone(tone: str, friendly: str, clinical: str, funny: str) -> str:
    if tone == "clinical":
        return clinical
    if tone == "funny":
        return funny
    return friendly


def _junk_hint(goal: str, tone: str, is_late: bool) -> str:
    tone_table = JUNK_HINTS.get(tone, JUNK_HINTS["friendly"])
    if goal == "fat_loss" and is_late and tone in LATE_JUNK_HINTS:
        return LATE_JUNK_HINTS[tone]
    return tone_table.get(goal) or tone_table["general"]


def _goal_hints(goal: str, tone: str, tags: MealTags, focus: list[str]) -> list[str]:
    hints: list[str] = []
    if goal == "fat_loss":
        if tags["protein"] and tags["veggies"] and tags["carbs"] == "low":
            hints.append(
                pick_tone(
                    tone,
                    "Perfect fat loss combo! Protein + veggies = success! ✨",
                    "Optimal macronutrient profile for fat loss.",
                    "Nailed it! Fat doesn't stand a chance! 🔥",
                )
            )
        if tags["carbs"] == "high" and not tags["junk"]:
            hints.append(
                pick_tone(
                    tone,
                    "High carbs - balance with extra activity today! 🏃‍♀️",
                    "Consider reducing carbohydrate portion sizes.",
                    "Carb loading? Time to earn those carbs! 💪",
                )
            )

    if goal == "muscle_gain":
        if tags["protein"] and tags["carbs"] != "low":
            hints.append(
                pick_tone(
                    tone,
                    "Great protein choice! Your muscles will thank you! 💪",
                    "Adequate protein supports muscle protein synthesis.",
                    "Gains incoming! 🚀💪",
                )
            )
        if not tags["protein"]:
            hints.append(
                pick_tone(
                    tone,
                    "Add some protein to fuel those gains! 🥩",
                    "Insufficient protein may limit muscle development.",
                    "Where's the protein? Muscles need building blocks! 🧱",
                )
            )

    if "protein" in focus and not tags["protein"]:
        hints.append(
            pick_tone(
                tone,
                "Don't forget your protein goal! 🥩",
                "Protein intake below target focus area.",
                "Protein called - it feels left out! 📞",
            )
        )
    if "veggies" in focus and tags["veggies"]:
        hints.append(
            pick_tone(tone, "Love the veggies! Keep it up! 🥬", "Excellent vegetable inclusion.", "Veggie victory! 🏆🥗")
        )
    return hints


def _generic_hint(tone: str, tags: MealTags) -> str:
    if tags["protein"] and tags["veggies"]:
        return pick_tone(
            tone,
            "Balanced meal! Great job! 👍",
            "Well-balanced nutritional profile.",
            "Balance achieved! You're a nutrition ninja! 🥷",
        )
    if tags["veggies"]:
        return pick_tone(tone, "Good veggie choice! 🥗", "Adequate vegetable intake noted.", "Veggie power activated! 🦸‍♀️🥬")
    return pick_tone(tone, "Meal logged! Stay consistent! 📝", "Meal recorded successfully.", "Another meal in the books! 📚")


def generate_hint(
    goal: str,
    tone: str,
    focus: list[str],
    tags: MealTags,
    current_hour: Optional[int] = None,
) -> str:
    """Return one short hint for a tagged meal.

    Junk food wins over everything, then late eating (judged on the wall clock at
    logging time together with the meal's own time-of-day bucket), then the first
    goal/focus hint, then a generic acknowledgement.
    """
    hour = now().hour if current_hour is None else current_hour
    is_late = hour >= LATE_EATING_HOUR

    if tags["junk"]:
        return _junk_hint(goal, tone, is_late)
    if is_late and tags["timeOfDay"] == "late":
        return LATE_HINTS.get(tone, LATE_HINTS["friendly"])

    hints = _goal_hints(goal, tone, tags, focus)
    if hints:
        return hints[0]
    return _generic_hint(tone, tags)


def _format_range(value: Optional[NutrientRange], unit: str) -> Optional[str]:
    if value is None:
        return None
    low, high = round(value.min), round(value.max)
    if low == high:
        return f"~{low}{unit}"
    return f"{low}-{high}{unit}"


def generate_analysis_hint(analysis: MealAnalysis, tone: str) -> str:
    header = pick_tone(tone, "Meal logged! 📝", "Meal recorded.", "Another meal in the books! 📚")
    parts = [
        part
        for part in (
            _format_range(analysis.nutrition.calories, " kcal"),
            _format_range(analysis.nutrition.protein_g, "g protein"),
        )
        if part
    ]
    lines = [header]
    if parts:
        lines.append(f"Estimate: {', '.join(parts)}.")
    if analysis.categories.junk.value:
        lines.append(
            pick_tone(
                tone,
                "Balance it with veggies next time! 🥗",
                "Consider a less processed option next time.",
                "Your body called - it wants real food! 📞🥗",
            )
        )
    elif analysis.categories.veggies.value:
        lines.append(pick_tone(tone, "Love the veggies! 🥬", "Vegetable inclusion noted.", "Veggie victory! 🏆🥗"))
    return "\n".join(lines)
