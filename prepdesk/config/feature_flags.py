"""
Feature Flags and Runtime Settings

All values are loaded from environment variables so a deployment can
toggle them without code changes.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable, falling back on bad input."""
    try:
        return float(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


class FeatureFlags:
    """
    Feature flags for the application.
    
    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """
    
    # AI-assisted weekly plan generation
    FEATURE_AI_PLAN_GENERATION: bool = get_bool_env('FEATURE_AI_PLAN_GENERATION', True)
    
    # Use the rule-based generator when the AI call fails or its plan is rejected
    AI_PLAN_FALLBACK_ENABLED: bool = get_bool_env('AI_PLAN_FALLBACK_ENABLED', True)
    
    # Caller-owned timeout for one generation round-trip
    AI_PLAN_TIMEOUT_SECONDS: float = get_float_env('AI_PLAN_TIMEOUT_SECONDS', 30.0)
    
    AI_PLAN_RATE_LIMIT: str = os.getenv('AI_PLAN_RATE_LIMIT', '5/minute')
    
    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled."""
        return getattr(cls, flag_name, False)


feature_flags = FeatureFlags()
