import base64
import logging
from typing import Optional

from food_coach.core.config import OPENAI_MAX_TOKENS, OPENAI_MODEL
from food_coach.services.llm import LLMClient, LLMRequestError

logger = logging.getLogger("uvicorn.error")

FOOD_KEYWORDS = [
    "food", "meal", "eat", "dish", "plate", "bowl", "cup",
    "chicken", "beef", "fish", "rice", "bread", "vegetable",
    "fruit", "salad", "soup", "sandwich", "pasta", "pizza",
    "cooked", "grilled", "fried", "baked", "raw",
]

FOOD_PHOTO_SYSTEM_PROMPT = """
You are a nutrition expert analyzing food photos for detailed meal logging. Your task is to provide an extremely detailed description of ALL food items visible in the image.

Provide a comprehensive analysis including:

1. MAIN PROTEIN SOURCES: type of meat/fish/legumes, cooking method, portion size (small/medium/large, be specific) and visible characteristics (skin on/off, breaded, seasoned).
2. CARBOHYDRATE SOURCES: type and specific variety (brown rice, whole wheat bread), portion size and form (1/2 cup, 1 slice, mashed) and cooking method.
3. VEGETABLES: list EVERY visible vegetable with cooking method (raw, steamed, roasted, sauteed) and portion size.
4. FATS/OILS: visible oils, dressings, sauces or butter, with type and amount where identifiable.
5. ADDITIONAL INGREDIENTS: herbs, spices, nuts, seeds, cheese and any other visible items.
6. MEAL CONTEXT: time of day indicators, setting clues (restaurant, home-cooked, takeout) and presentation style.
7. QUALITY INDICATORS: homemade vs processed, fresh vs packaged, healthy vs junk food characteristics.
{caption_hint}
FORMAT YOUR RESPONSE AS:
"Detailed meal description: [comprehensive list of all items with portions and methods]"

EXAMPLE:
"Detailed meal description: 1 medium grilled chicken breast (skinless, seasoned), 3/4 cup steamed broccoli florets, 1/2 cup brown rice, 1 tablespoon olive oil drizzle, fresh herbs garnish. Appears home-cooked, healthy preparation."

BE EXTREMELY THOROUGH. Include every visible food item, estimate portions, note cooking methods, and provide context that will help with nutrition analysis.
""".strip()


def build_food_photo_prompt(caption: Optional[str] = None) -> str:
    caption_hint = ""
    if caption:
        caption_hint = f'\nUSER CAPTION: "{caption}" - Use this as additional context but prioritize what you see in the image.\n'
    return FOOD_PHOTO_SYSTEM_PROMPT.format(caption_hint=caption_hint)


def is_food_description(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in FOOD_KEYWORDS)


class VisionAnalyzer:
    def __init__(self, llm_client: LLMClient, model: str = OPENAI_MODEL):
        self.llm_client = llm_client
        self.model = model

    def describe_food(self, image: bytes, mime_type: str = "image/jpeg", caption: Optional[str] = None) -> str:
        """Describe a food photo; raises LLMRequestError when no description comes back."""
        logger.info("vision_analysis_started size=%s has_caption=%s", len(image), bool(caption))
        image_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
        if caption:
            instruction = (
                "Please provide a detailed analysis of this food image. "
                f'The user also provided this caption: "{caption}" - use it as context but focus on what you see in the image.'
            )
        else:
            instruction = (
                "Please provide a detailed analysis of this food image. "
                "List every visible food item with portions, cooking methods, and context."
            )
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_food_photo_prompt(caption)},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {"type": "image_url", "image_url": {"url": image_url, "detail": "low"}},
                    ],
                },
            ],
            "max_tokens": OPENAI_MAX_TOKENS,
            "temperature": 0.1,
        }
        message = self.llm_client.chat_completion(payload)
        description = str((message or {}).get("content") or "").strip()
        if not description:
            raise LLMRequestError(provider="openai", model=self.model, message="No description returned from vision model")
        logger.info("vision_analysis_completed description_length=%s", len(description))
        return description
