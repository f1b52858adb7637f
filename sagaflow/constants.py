"""Shared constants for sagaflow."""

ORDER_INITIATION_QUEUE = "order_initiation_queue"
PAYMENT_COMMAND_QUEUE = "payment_command_queue"
SHIPPING_COMMAND_QUEUE = "shipping_command_queue"
PAYMENT_COMPLETED_QUEUE = "payment_completed_queue"
SHIPPING_COMPLETED_QUEUE = "shipping_completed_queue"

SAGA_QUEUES = (
    ORDER_INITIATION_QUEUE,
    PAYMENT_COMMAND_QUEUE,
    SHIPPING_COMMAND_QUEUE,
    PAYMENT_COMPLETED_QUEUE,
    SHIPPING_COMPLETED_QUEUE,
)

ORDERS_SERVICE = "orders-service"
PAYMENTS_SERVICE = "payments-service"
SHIPPING_SERVICE = "shipping-service"
CATALOG_SERVICE = "catalog-service"

# seconds
DEFAULT_INVOKE_TIMEOUT = 10.0
DEFAULT_REGISTRY_TIMEOUT = 5.0
DEFAULT_CONNECT_RETRIES = 5
DEFAULT_CONNECT_RETRY_DELAY = 5.0
DEFAULT_TOKEN_TTL = 3600

DEFAULT_MAX_RUNS = 1000
DEFAULT_MAX_TRANSACTIONS = 10000

PLACE_ORDER_WORKFLOW = "PlaceOrder"
