# -*- coding: utf-8 -*-
"""English (en) strings."""

LANG = {
    "common.back": "← Back",
    "common.cancel": "❌ Cancel",
    "common.cancelled": "Cancelled.",
    "common.nothing_to_cancel": "Nothing to cancel.",

    # Hero screen
    "main.welcome": (
        "🎓 <b>Refer &amp; Earn Rewards</b>\n\n"
        "Share the gift of learning and earn rewards for every successful referral"
    ),
    "main.refer_now": "🎁 Refer Now",

    # Bot commands
    "commands.start": "Start the bot",
    "commands.refer": "Refer a friend",
    "commands.cancel": "Cancel current input",

    # Referral form
    "referral.form_title": "<b>Refer a Friend</b>",
    "referral.field.referrerName": "Your Name",
    "referral.field.referrerEmail": "Your Email",
    "referral.field.refereeName": "Friend's Name",
    "referral.field.refereeEmail": "Friend's Email",
    "referral.field.course": "Course",
    "referral.value_empty": "—",
    "referral.field_line": "<b>{label}:</b> {value}",
    "referral.error_line": "   ⚠️ <i>{message}</i>",
    "referral.banner_success": "✅ {message}",
    "referral.banner_error": "❌ {message}",
    "referral.submitting": "⏳ Submitting referral...",
    "referral.form_hint": "Tap a field to fill it in, then press «Submit Referral».",
    "referral.submit_button": "📨 Submit Referral",
    "referral.close_button": "✖ Close",
    "referral.edit_button": "✏️ {label}",

    "referral.prompt.referrerName": "Enter your name:",
    "referral.prompt.referrerEmail": "Enter your email:",
    "referral.prompt.refereeName": "Enter your friend's name:",
    "referral.prompt.refereeEmail": "Enter your friend's email:",
    "referral.input_text_hint": "Please send the value as a text message.",

    "referral.course_placeholder": "Select a course",
    "referral.course.web-development": "Web Development",
    "referral.course.data-science": "Data Science",
    "referral.course.mobile-development": "Mobile Development",

    "referral.already_submitting": "Submission in progress, please wait.",
    "referral.form_closed": "This form is closed. Tap «Refer Now» to open it again.",
    "referral.fix_errors": "Please fix the highlighted fields.",
}
