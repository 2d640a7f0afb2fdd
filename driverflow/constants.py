"""Shared constants for driverflow workflows."""

DEFAULT_PROVIDER_TIMEOUT = 30.0

# Minimum liability coverage, in currency units, for a policy to count as adequate
LIABILITY_FLOOR = 50000

ONBOARDING_FEES = {
    "BASIC": 99.99,
    "PREMIUM": 149.99,
    "ENTERPRISE": 299.99,
}
DEFAULT_PLAN = "BASIC"
DEFAULT_CURRENCY = "usd"

ONBOARDING_WORKFLOW = "onboarding"
BACKGROUND_CHECK_WORKFLOW = "background_check"
INSURANCE_WORKFLOW = "insurance"

# Stores live in files next to the working directory unless configured otherwise;
# MEMORY_URL selects the process-local stores.
DEFAULT_DATABASE_URL = "sqlite://driverflow.db"
DEFAULT_SUBJECTS_URL = "sqlite+aiosqlite:///drivers.db"
MEMORY_URL = "memory://"
