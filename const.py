# Pagination Defaults
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100

# Roles issued by the auth service
SUPER_ADMIN = "super_admin"
SUB_ADMIN = "sub_admin"
RESTAURANT_OWNER = "restaurant_owner"
CUSTOMER = "customer"
DELIVERY_PERSON = "delivery_person"

ADMIN_ROLES = (SUPER_ADMIN, SUB_ADMIN)
PRIVILEGED_ROLES = (SUPER_ADMIN, SUB_ADMIN, RESTAURANT_OWNER)

ORDER_CREATE_ROLES = (CUSTOMER,)
ORDER_READ_ROLES = (CUSTOMER, RESTAURANT_OWNER, SUPER_ADMIN, SUB_ADMIN, DELIVERY_PERSON)
ORDER_STATUS_ROLES = (RESTAURANT_OWNER, SUPER_ADMIN, SUB_ADMIN, DELIVERY_PERSON)
ORDER_CANCEL_ROLES = (CUSTOMER, RESTAURANT_OWNER, SUPER_ADMIN, SUB_ADMIN)
PAYMENT_ROLES = (CUSTOMER, RESTAURANT_OWNER, SUPER_ADMIN, SUB_ADMIN)
REFUND_PROCESS_ROLES = (SUPER_ADMIN, SUB_ADMIN, RESTAURANT_OWNER)

NO_CANCEL_REASON = "No reason provided"

VERIFY_COD_ENDPOINT = "/api/v1/payments/verify-cod"

# Receipts for pending payments are promised within this window.
RECEIPT_ESTIMATE_SECONDS = 60 * 60

ORDER_MANAGE_ROLES = (RESTAURANT_OWNER, SUPER_ADMIN, SUB_ADMIN)

POPULAR_ITEMS_LIMIT = 10
