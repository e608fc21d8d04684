# -*- coding: utf-8 -*-
"""
I18N for the referral bot.
No hardcoded UI strings in handlers: everything shown in chat comes from here,
except validation and status messages, which come from the referral service.

Language resolution:
- If language not in LANGUAGES → use DEFAULT_LANGUAGE (en)
- If key missing in requested language → fallback to English
- If key missing in all languages → return key (safe fallback, never crash)
"""

import logging
from typing import Optional

from . import en

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

LANGUAGES = {
    "en": en.LANG,
}


def resolve_language(language_code: Optional[str]) -> str:
    """Map a Telegram language_code (e.g. "en-GB") to a supported language."""
    if not language_code:
        return DEFAULT_LANGUAGE
    base = language_code.split("-")[0].lower()
    return base if base in LANGUAGES else DEFAULT_LANGUAGE


def get_text(language: str, key: str, **kwargs) -> str:
    """
    Get localized text for key in given language.

    Args:
        language: Language code
        key: Dot-separated key (e.g. referral.form_title, common.back)
        **kwargs: Format placeholders (e.g. label="Your Name" for {label})

    Returns:
        Localized string, optionally formatted. Never raises.
    """
    lang_dict = LANGUAGES.get(language, LANGUAGES[DEFAULT_LANGUAGE])
    text = lang_dict.get(key)

    if text is None:
        text = LANGUAGES[DEFAULT_LANGUAGE].get(key)
        if text is None:
            logger.error("I18N missing key in all languages: %s", key)
            return key
        logger.warning("I18N fallback to %s for key=%s, lang=%s", DEFAULT_LANGUAGE, key, language)

    if kwargs:
        return text.format(**kwargs)
    return text


__all__ = ["get_text", "resolve_language", "LANGUAGES", "DEFAULT_LANGUAGE"]
