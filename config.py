import os
import sys

# ====================================================================================
# ENVIRONMENT CONFIGURATION: PROD / STAGE / LOCAL isolation via prefixes
# ====================================================================================
# Every variable is read with the environment prefix:
#   - PROD:  PROD_BOT_TOKEN,  PROD_REFERRAL_API_URL
#   - STAGE: STAGE_BOT_TOKEN, STAGE_REFERRAL_API_URL
#   - LOCAL: LOCAL_BOT_TOKEN, LOCAL_REFERRAL_API_URL
#
# A STAGE bot can never pick up PROD_BOT_TOKEN even if it is set in the
# same container.
#
# This module is the only place that reads the environment. Everything
# else receives its settings at construction (see main.py).
# ====================================================================================

APP_ENV = os.getenv("APP_ENV", "prod").lower()
if APP_ENV not in ("prod", "stage", "local"):
    print(f"ERROR: Invalid APP_ENV={APP_ENV}. Must be one of: prod, stage, local", file=sys.stderr)
    sys.exit(1)


def env(key: str, default: str = "") -> str:
    """
    Read an environment variable with the environment prefix

    Args:
        key: Name without prefix (e.g. "BOT_TOKEN")
        default: Value when the variable is not set

    Returns:
        Value of <APP_ENV>_<key>

    Example:
        env("BOT_TOKEN") -> value of STAGE_BOT_TOKEN (when APP_ENV=stage)
    """
    env_key = f"{APP_ENV.upper()}_{key}"
    return os.getenv(env_key, default)


def _float_env(key: str, default: str) -> float:
    raw = env(key, default=default)
    try:
        value = float(raw)
    except ValueError:
        print(f"ERROR: {APP_ENV.upper()}_{key} must be a number, got: {raw}", file=sys.stderr)
        sys.exit(1)
    if value < 0:
        print(f"ERROR: {APP_ENV.upper()}_{key} must not be negative, got: {raw}", file=sys.stderr)
        sys.exit(1)
    return value


# Unprefixed secrets are refused outright
_direct_usage_vars = ["BOT_TOKEN", "REFERRAL_API_URL"]
for var in _direct_usage_vars:
    if os.getenv(var):
        print(f"ERROR: Direct usage of {var} is FORBIDDEN!", file=sys.stderr)
        print(f"ERROR: Use {APP_ENV.upper()}_{var} instead (via env('{var}'))", file=sys.stderr)
        sys.exit(1)

print(f"INFO: Config loaded for environment: {APP_ENV.upper()}", flush=True)

# Telegram Bot Token (from @BotFather). Never logged.
BOT_TOKEN = env("BOT_TOKEN")
if not BOT_TOKEN:
    print(f"ERROR: {APP_ENV.upper()}_BOT_TOKEN environment variable is not set!", file=sys.stderr)
    sys.exit(1)
print(f"INFO: Using BOT_TOKEN from {APP_ENV.upper()}_BOT_TOKEN", flush=True)

# Referrals backend: POST {REFERRAL_API_URL}/api/referrals
DEFAULT_REFERRAL_API_URL = "http://localhost:3001"
REFERRAL_API_URL = (env("REFERRAL_API_URL") or DEFAULT_REFERRAL_API_URL).rstrip("/")
if not env("REFERRAL_API_URL"):
    print(f"WARNING: {APP_ENV.upper()}_REFERRAL_API_URL is not set - using {DEFAULT_REFERRAL_API_URL}", file=sys.stderr)
print(f"INFO: REFERRAL_API_URL={REFERRAL_API_URL}", flush=True)

# Request timeout for the referrals API (seconds)
REFERRAL_API_TIMEOUT = _float_env("REFERRAL_API_TIMEOUT", "10.0")

# Delay before the form closes itself after a successful submission (seconds)
REFERRAL_AUTO_CLOSE_SECONDS = _float_env("REFERRAL_AUTO_CLOSE_SECONDS", "2.0")

# Redis for FSM storage (optional; in-memory storage when empty)
REDIS_URL = env("REDIS_URL", default="")
if REDIS_URL:
    print("INFO: FSM storage: Redis", flush=True)
else:
    print("INFO: FSM storage: memory (form state is lost on restart)", flush=True)
