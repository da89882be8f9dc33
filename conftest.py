"""Global pytest configuration."""

import os

# Keep tests off real services before any imports read settings
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("PAYMENT_SIMULATED_DELAY_MS", "0")
