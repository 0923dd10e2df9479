"""Shared constants for taleflow."""

from __future__ import annotations

# Exponential moving average weights applied to provider health records.
LATENCY_DECAY = 0.7
LATENCY_WEIGHT = 0.3
ERROR_DECAY = 0.9
ERROR_WEIGHT = 0.1
HEALTHY_ERROR_THRESHOLD = 0.5

# Application-boundary defaults for the workflow options. Times are in ms.
DEFAULT_WORKFLOW_SETTINGS = {
    "max_retries": 3,
    "retry_delay": 1000,
    "timeout": 30000,
    "enable_caching": True,
    "cache_expiry": 5 * 60 * 1000,
    "cost_limit": 100.0,
}

DEFAULT_CACHE_MAX_ENTRIES = 512

# Known providers in registration order: (name, capability, cost per call).
DEFAULT_PROVIDERS = [
    ("openai-gpt", "text", 0.002),
    ("ovh-ai", "text", 0.001),
    ("openai-dalle", "image", 0.04),
    ("ovh-sdxl", "image", 0.02),
    ("openai-tts", "audio", 0.015),
]

# Static fallback table. The audio provider has no real alternate.
DEFAULT_FALLBACKS = {
    "openai-gpt": ["ovh-ai"],
    "ovh-ai": ["openai-gpt"],
    "openai-dalle": ["ovh-sdxl"],
    "ovh-sdxl": ["openai-dalle"],
    "openai-tts": ["openai-tts"],
}

# Returned by best_provider when no provider of a capability is healthy.
DEFAULT_PROVIDER_FOR = {
    "text": "ovh-ai",
    "image": "openai-dalle",
    "audio": "openai-tts",
}
