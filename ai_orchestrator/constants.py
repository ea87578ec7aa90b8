"""Configuration constants for routing, generation and cost accounting.

Values that operators are expected to tune are read from the environment with
bounds clamping; everything else is fixed behaviour of the routing core.
"""

import os

# =============================================================================
# Environment Variable Helpers
# =============================================================================


def _parse_int_env(name: str, default: int, min_val: int, max_val: int) -> int:
    """Parse an integer environment variable with bounds clamping.

    Returns default if env var is unset or unparseable. Clamps to [min_val, max_val].
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(min_val, min(max_val, value))


# =============================================================================
# Router Bypass & Heuristics
# =============================================================================

BYPASS_PATTERN_MAX_WORDS = 8
# Strict upper bound: a query must have fewer words than this to bypass on a
# simple-pattern match.

BYPASS_SHORT_MAX_WORDS = 5
# Inclusive bound: queries this short bypass without any pattern match, as long
# as no complexity signal is present.

BYPASS_CONFIDENCE = 0.95

HEURISTIC_SIMPLE_MAX_WORDS = 10
# Strict upper bound for the heuristic "fast" branch (tier 3).

# =============================================================================
# Router Classifier
# =============================================================================

CLASSIFIER_MAX_TOKENS = 256
# The classifier replies with one small JSON object; 256 leaves room for the
# reasoning string.

CLASSIFIER_DEFAULT_CONFIDENCE = 0.7
# Used when the classifier omits confidence.

CLASSIFIER_PARSE_FAILURE_CONFIDENCE = 0.5

# =============================================================================
# Generation Defaults
# =============================================================================

DEFAULT_MAX_TOKENS = 1024
JSON_MODE_MAX_TOKENS = 8192
# Anthropic and OpenAI adapters. JSON payloads are long and truncation makes
# them unparseable.

GEMINI_DEFAULT_MAX_TOKENS = 2048
GEMINI_JSON_MODE_MAX_TOKENS = 16384

DEFAULT_EXECUTION_CONFIDENCE = 0.8
# Reported when a route is executed without a router decision.

LLM_REQUEST_TIMEOUT_SECONDS = _parse_int_env(
    "LLM_REQUEST_TIMEOUT_SECONDS", default=120, min_val=5, max_val=600
)
# Read timeout for a single backend call. Configurable via
# LLM_REQUEST_TIMEOUT_SECONDS (clamped to 5-600).

# =============================================================================
# Cost Accounting
# =============================================================================

CHARS_PER_TOKEN = 4
# Token approximation used when a backend does not report usage.

DEFAULT_INPUT_COST_PER_1M = 3.00
DEFAULT_OUTPUT_COST_PER_1M = 15.00
# Applied when the serving model id is missing from the registry.

# =============================================================================
# Backends
# =============================================================================

DEFAULT_PROVIDER_ORDER = ("anthropic", "openai", "google")

ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_API_VERSION = "2023-06-01"
OPENAI_API_BASE = "https://api.openai.com/v1"
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
