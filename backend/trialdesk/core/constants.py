# backend/trialdesk/core/constants.py
"""
Static constants shared across the trial booking engine.
"""

from typing import Dict

BRAND_NAME = "AyatWBian"

# Operational timezone used for teacher-facing display and the same-day lock
REFERENCE_TIMEZONE = "Africa/Cairo"
REFERENCE_TIMEZONE_LABEL = "Egypt"

# Half-hour slot grid
SLOT_MINUTES = 30
SLOTS_PER_DAY = 48

# Client timezone aliases offered to sales agents, mapped to IANA zones
CLIENT_TIMEZONE_ALIASES: Dict[str, str] = {
    "saudi": "Asia/Riyadh",
    "uae": "Asia/Dubai",
    "qatar": "Asia/Qatar",
    "kuwait": "Asia/Kuwait",
    "bahrain": "Asia/Bahrain",
    "oman": "Asia/Muscat",
    "egypt": REFERENCE_TIMEZONE,
}

CLIENT_TIMEZONE_LABELS: Dict[str, str] = {
    "saudi": "Saudi",
    "uae": "UAE",
    "qatar": "Qatar",
    "kuwait": "Kuwait",
    "bahrain": "Bahrain",
    "oman": "Oman",
    "egypt": "Egypt",
}

DEFAULT_ENABLED_CURRENCIES = (
    "USD",
    "EUR",
    "GBP",
    "SAR",
    "AED",
    "QAR",
    "KWD",
    "BHD",
    "OMR",
    "EGP",
)

UNIQUE_ID_PREFIX = "AYB"

API_TITLE = f"{BRAND_NAME} Trial Desk API"
API_DESCRIPTION = f"Trial-slot availability, round-robin booking and student lifecycle for {BRAND_NAME}"
API_VERSION = "1.0.0"
