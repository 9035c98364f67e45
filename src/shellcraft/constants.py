"""Constants for the shellcraft command loop."""

import os

# Hard bound on executed attempts per invocation
MAX_ATTEMPTS = 3

# Substrings that mark a generated command as unsafe to run.
# Matched case-insensitively by plain containment, so "dd" also hits "add".
DANGEROUS_COMMANDS = [
    "rm -rf",
    "mkfs",
    "dd",
    "> /dev/",
    "chmod -R",
    ":(){ :|:& };:",
]

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"

DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES = ("en", "zh")

DEFAULT_TIMEOUT_S = float(os.getenv("SHELLCRAFT_TIMEOUT_S", "60"))

# Keys accepted by `shellcraft config key=value`
CONFIG_KEYS = ("base_url", "api_key", "model", "locale")

DEFAULT_CONFIG_PATH = "~/.config/shellcraft/config.yaml"
