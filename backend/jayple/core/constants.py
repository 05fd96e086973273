# backend/jayple/core/constants.py
"""Application-wide constants for the Jayple dispatch API."""

BRAND_NAME = "Jayple"

API_TITLE = f"{BRAND_NAME} Dispatch API"
API_VERSION = "1.0.0"
API_DESCRIPTION = (
    "Booking dispatch, freelancer assignment, payment and provider ledger engine "
    f"for the {BRAND_NAME} on-demand services marketplace."
)

# Celery task names (kept in one place so enqueue helpers and workers agree)
ASSIGNMENT_TIMEOUT_TASK = "jayple.tasks.assignment_tasks.check_assignment_timeout"
WEEKLY_SETTLEMENT_TASK = "jayple.tasks.settlement_tasks.run_weekly_settlements"

DISPATCH_QUEUE = "dispatch"
SETTLEMENTS_QUEUE = "settlements"
