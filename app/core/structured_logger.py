"""
Structured logging normalization.

Single contract for lifecycle logs of the referral widget:
- component      (handler / referrals / polling / shutdown)
- operation      (what is happening, e.g. referral_submit, modal_open)
- correlation_id (update id or callback id, optional)
- outcome        (success | failed | dropped | cancelled)
- duration_ms    (optional, omitted if None)
- reason         (optional, short and non-PII: never names or emails)
"""
from logging import Logger
from typing import Optional


def log_event(
    logger: Logger,
    *,
    component: str,
    operation: str,
    correlation_id: Optional[str] = None,
    outcome: str,
    duration_ms: Optional[int] = None,
    reason: Optional[str] = None,
    level: str = "info",
    message: Optional[str] = None,
) -> None:
    """
    Emit structured log event.

    Fields are attached as `extra` so a JSON formatter can pick them up;
    the default message repeats them for plain-text handlers.

    Args:
        logger: Logger instance
        component: Component name
        operation: Operation name
        correlation_id: Update/callback identifier (optional)
        outcome: Outcome
        duration_ms: Duration in milliseconds (omitted if None)
        reason: Short non-PII explanation (optional)
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Optional override message
    """
    extra: dict = {
        "component": component,
        "operation": operation,
        "outcome": outcome,
    }
    parts = [f"{component} {operation} outcome={outcome}"]
    if correlation_id is not None:
        extra["correlation_id"] = str(correlation_id)
        parts.append(f"correlation_id={correlation_id}")
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
        parts.append(f"duration_ms={duration_ms}")
    if reason is not None:
        extra["reason"] = reason
        parts.append(f"reason={reason}")

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(message or " ".join(parts), extra=extra)
