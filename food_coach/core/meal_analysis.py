from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CLASSIFICATION_VERSION = 1


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class NutrientRange(_Strict):
    min: float
    max: float
    confidence: float = Field(ge=0, le=1)


class Nutrition(_Strict):
    calories: Optional[NutrientRange] = None
    protein_g: Optional[NutrientRange] = None
    carbs_g: Optional[NutrientRange] = None
    fat_g: Optional[NutrientRange] = None
    fiber_g: Optional[NutrientRange] = None


class BoolFlag(_Strict):
    value: bool
    confidence: float = Field(ge=0, le=1)


class ProcessingLevel(_Strict):
    value: Literal[1, 2, 3, 4]
    confidence: float = Field(ge=0, le=1)


class CarbsQuality(_Strict):
    value: Literal["refined", "whole", "mixed", "unknown"]
    confidence: float = Field(ge=0, le=1)


class Categories(_Strict):
    veggies: BoolFlag
    junk: BoolFlag
    homemade: BoolFlag
    processing_level: Optional[ProcessingLevel] = None
    carbs_quality: Optional[CarbsQuality] = None


class Ingredient(_Strict):
    name: str
    confidence: float = Field(ge=0, le=1)


class MealType(_Strict):
    value: Literal["breakfast", "lunch", "dinner", "snack", "post_workout", "other"]
    confidence: float = Field(ge=0, le=1)


class PortionSize(_Strict):
    value: Literal["small", "medium", "large"]
    confidence: float = Field(ge=0, le=1)


class DietaryFlags(_Strict):
    dairy: Optional[bool] = None
    gluten: Optional[bool] = None
    nuts: Optional[bool] = None
    vegan_friendly: Optional[bool] = None


class MealAnalysis(_Strict):
    nutrition: Nutrition
    categories: Categories
    ingredients: list[Ingredient]
    meal_type: MealType
    portion_size: PortionSize
    dietary_flags: Optional[DietaryFlags] = None
    overall_confidence: float = Field(ge=0, le=1)
    notes: Optional[str] = Field(default=None, max_length=100)
    estimation_source: Literal["openai"] = "openai"
    model_version: Optional[str] = None
    classification_version: int = CLASSIFICATION_VERSION


def _range_schema() -> dict[str, Any]:
    return {
        "type": ["object", "null"],
        "properties": {
            "min": {"type": "number"},
            "max": {"type": "number"},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["min", "max", "confidence"],
    }


def _flag_schema(value_schema: dict[str, Any], required: bool = True) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "value": value_schema,
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
    }
    if required:
        schema["required"] = ["value", "confidence"]
    return schema


ANALYZE_MEAL_FUNCTION: dict[str, Any] = {
    "name": "analyze_meal",
    "description": "Extract nutrition and categorization data from meal description",
    "parameters": {
        "type": "object",
        "properties": {
            "nutrition": {
                "type": "object",
                "properties": {
                    "calories": _range_schema(),
                    "protein_g": _range_schema(),
                    "carbs_g": _range_schema(),
                    "fat_g": _range_schema(),
                    "fiber_g": _range_schema(),
                },
            },
            "categories": {
                "type": "object",
                "properties": {
                    "veggies": _flag_schema({"type": "boolean"}),
                    "junk": _flag_schema({"type": "boolean"}),
                    "processing_level": _flag_schema({"type": "number", "enum": [1, 2, 3, 4]}, required=False),
                    "homemade": _flag_schema({"type": "boolean"}),
                    "carbs_quality": _flag_schema(
                        {"type": "string", "enum": ["refined", "whole", "mixed", "unknown"]}, required=False
                    ),
                },
                "required": ["veggies", "junk", "homemade"],
            },
            "ingredients": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                    },
                    "required": ["name", "confidence"],
                },
            },
            "meal_type": _flag_schema(
                {"type": "string", "enum": ["breakfast", "lunch", "dinner", "snack", "post_workout", "other"]}
            ),
            "portion_size": _flag_schema({"type": "string", "enum": ["small", "medium", "large"]}),
            "dietary_flags": {
                "type": "object",
                "properties": {
                    "dairy": {"type": "boolean"},
                    "gluten": {"type": "boolean"},
                    "nuts": {"type": "boolean"},
                    "vegan_friendly": {"type": "boolean"},
                },
            },
            "overall_confidence": {"type": "number", "minimum": 0, "maximum": 1},
            "notes": {"type": "string", "maxLength": 100},
        },
        "required": ["nutrition", "categories", "ingredients", "meal_type", "portion_size", "overall_confidence"],
    },
}
