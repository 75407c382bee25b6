MESSAGES = {
    "message_too_long": "Message too long. Please keep it under 1000 characters.",
    "invalid_webhook": "Invalid webhook request",
    "internal_error": "Sorry, something went wrong. Please try again later.",
    "unsupported_media": "Sorry, I can only read text messages, food photos and voice notes.",
    "media_failed": "Sorry, I couldn't process that media. Please try again or describe your meal in text.",
    "preference_update_failed": "Sorry, I couldn't understand your preference update. Please try again.",
    "meal_log_failed": "Sorry, I couldn't log that meal. Please try again.",
    "summary_failed": "Sorry, I couldn't generate that summary. Please try again.",
    "coach_fallback": "I'm here to help with your nutrition goals! What would you like to know?",
    "unknown_tool": "I'm not sure how to help with that. Try asking about meals, goals, or nutrition advice!",
    "default_reply": "I'm here to help with your nutrition goals!",
    "weekly_coming_soon": "Weekly summaries coming soon! For now, try asking for your daily report.",
    "meal_logged_plain": "Meal logged! 📝",
    "analysis_unavailable": "Meal logged! 📝 Nutrition analysis is unavailable right now, but your meal is saved.",
    "image_unavailable": "Image received - analysis temporarily unavailable",
    "voice_unavailable": "Voice message received - transcription temporarily unavailable",
}
