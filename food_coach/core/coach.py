import logging

from food_coach.core.text import truncate_text

logger = logging.getLogger("uvicorn.error")

COACH_TIPS: list[tuple[tuple[str, ...], str]] = [
    (("breakfast",), "Start with protein and fiber! Try eggs with veggies or Greek yogurt with berries. 🍳"),
    (("snack",), "Great snack options: nuts, fruit, or veggie sticks with hummus. Keep it balanced! 🥜"),
    (("water", "hydration"), "Aim for 8 glasses daily! Add lemon or mint for flavor. Stay hydrated! 💧"),
    (("exercise", "workout"), "Fuel your workouts with protein and carbs. Post-workout protein helps recovery! 💪"),
    (("weight", "lose"), "Focus on whole foods, portion control, and consistency. Small changes add up! 📈"),
    (("muscle", "gain"), "Prioritize protein with each meal and strength training. Consistency is key! 🏋️"),
]

DEFAULT_TIP = "Great question! Focus on whole foods, balanced meals, and listen to your body. You've got this! 🌟"


def generate_advice(question: str) -> str:
    logger.info("coach_advice_requested question=%s", truncate_text(question))
    lowered = question.lower()
    for keywords, tip in COACH_TIPS:
        if any(keyword in lowered for keyword in keywords):
            return tip
    return DEFAULT_TIP
