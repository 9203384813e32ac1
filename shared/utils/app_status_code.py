class AppStatusCode:
    # Success
    OPERATION_SUCCESSFUL = "100"
    DATA_RETRIEVED_SUCCESSFULLY = "101"
    CREATED_SUCCESSFULLY = "102"
    UPDATED_SUCCESSFULLY = "103"

    # Generic failures
    OPERATION_FAILED = "200"
    INVALID_INPUT = "201"
    NOT_FOUND = "202"

    # Auth
    AUTHENTICATION_TOKEN_INVALID = "300"
    AUTHORIZATION_PERMISSION_DENIED = "301"

    # Billing
    BILLING_CONFIGURATION_INVALID = "400"
    BILLING_DUPLICATE_PERIOD = "401"
    BILLING_INVALID_READING = "402"
    BILLING_PENDING_ITEMS = "403"
    BILLING_INVALID_TRANSITION = "404"
