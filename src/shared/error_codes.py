# src/shared/error_codes.py
# Central mapping for the error contract.
# Keep keys stable: the back-office UI branches on these codes.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 422,
        "message": "Validation failed for one or more fields."
    },
    "invalid_request": {
        "http": 400,
        "message": "Invalid request payload."
    },

    # ─── Authentication & Authorization ────────────────────────────────────
    "unauthorized": {
        "http": 401,
        "message": "Unauthorized. Please provide valid credentials."
    },
    "forbidden": {
        "http": 403,
        "message": "You are not allowed to perform this action."
    },
    "session_error": {
        "http": 401,
        "message": "Admin session error. Please log in again."
    },

    # ─── Resources ─────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },
    "tenant_not_found": {
        "http": 404,
        "message": "Brand not found."
    },
    "program_not_found": {
        "http": 422,
        "message": "Selected program not found."
    },
    "user_limit_reached": {
        "http": 409,
        "message": "The brand has reached its maximum number of users."
    },

    # ─── Provisioning ──────────────────────────────────────────────────────
    "payment_failed": {
        "http": 402,
        "message": "Payment could not be confirmed."
    },
    "tenant_creation_failed": {
        "http": 503,
        "message": "Failed to create the brand. Please try again."
    },
    "identity_creation_failed": {
        "http": 503,
        "message": "Failed to create user in authentication service."
    },
    "email_already_in_use": {
        "http": 409,
        "message": "This email address is already registered. Please log in instead."
    },
    "profile_creation_failed": {
        "http": 503,
        "message": "Failed to create the admin user account."
    },
    "compensation_failed": {
        "http": 500,
        "message": "Cleanup after a failed provisioning step did not complete."
    },

    # ─── Generic ───────────────────────────────────────────────────────────
    "conflict": {
        "http": 409,
        "message": "Conflict."
    },
    "service_unavailable": {
        "http": 503,
        "message": "An upstream service is unavailable."
    },
    "internal_error": {
        "http": 500,
        "message": "An unexpected error occurred."
    },
}
