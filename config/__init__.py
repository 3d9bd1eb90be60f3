import os


def get_settings_module() -> str:
    # APP_ENV selects the settings module; anything unknown falls back to development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def engine_from_env(**overrides) -> dict:
    """Policy settings shared by every environment, read from ENGINE_* variables."""
    values = {
        "LATE_THRESHOLD": os.getenv("ENGINE_LATE_THRESHOLD", "09:00"),
        "LATE_GRACE_MINUTES": int(os.getenv("ENGINE_LATE_GRACE_MINUTES", "5")),
        "STANDARD_HOURS_PER_DAY": float(os.getenv("ENGINE_STANDARD_HOURS_PER_DAY", "8")),
        "HALF_DAY_FRACTION": float(os.getenv("ENGINE_HALF_DAY_FRACTION", "0.5")),
        "ANNUAL_LEAVE_DAYS": int(os.getenv("ENGINE_ANNUAL_LEAVE_DAYS", "22")),
        "MONTHLY_WORKING_DAYS": int(os.getenv("ENGINE_MONTHLY_WORKING_DAYS", "22")),
        "OVERTIME_MULTIPLIER": os.getenv("ENGINE_OVERTIME_MULTIPLIER", "1.5"),
        "WEEKEND_POLICY": os.getenv("ENGINE_WEEKEND_POLICY", "sat_sun"),
        "STATUTORY_DEDUCTIONS": bool(int(os.getenv("ENGINE_STATUTORY_DEDUCTIONS", "0"))),
    }
    values.update(overrides)
    return values
