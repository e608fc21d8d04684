"""
Pure presentation helpers. Reusable for callbacks and message commands.
No router decorators, no handler-level logic, only rendering.
"""
from html import escape

from app.i18n import get_text as i18n_get_text
from app.services.referrals.service import (
    FIELD_COURSE,
    FORM_FIELDS,
    ReferralWidget,
    SubmitStatusType,
)


def render_hero_text(language: str) -> str:
    return i18n_get_text(language, "main.welcome")


def _display_value(language: str, field_name: str, value: str) -> str:
    if field_name == FIELD_COURSE:
        if not value:
            return i18n_get_text(language, "referral.course_placeholder")
        title = i18n_get_text(language, f"referral.course.{value}")
        # Unknown course ids come back as the key itself
        return escape(value) if title.startswith("referral.course.") else title
    if not value:
        return i18n_get_text(language, "referral.value_empty")
    return escape(value)


def render_referral_form(widget: ReferralWidget, language: str) -> str:
    """
    Form message text: title, status banner, pending line, one line per
    field with its inline error underneath.
    """
    lines = [i18n_get_text(language, "referral.form_title"), ""]

    status = widget.status
    if status.type is SubmitStatusType.SUCCESS:
        lines += [i18n_get_text(language, "referral.banner_success", message=escape(status.message)), ""]
    elif status.type is SubmitStatusType.ERROR:
        lines += [i18n_get_text(language, "referral.banner_error", message=escape(status.message)), ""]

    if widget.is_submitting:
        lines += [i18n_get_text(language, "referral.submitting"), ""]

    for field_name in FORM_FIELDS:
        lines.append(i18n_get_text(
            language,
            "referral.field_line",
            label=i18n_get_text(language, f"referral.field.{field_name}"),
            value=_display_value(language, field_name, widget.form.get(field_name)),
        ))
        error = widget.errors.get(field_name)
        if error:
            lines.append(i18n_get_text(language, "referral.error_line", message=escape(error)))

    lines += ["", i18n_get_text(language, "referral.form_hint")]
    return "\n".join(lines)
