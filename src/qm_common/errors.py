"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Merchant/Menu
  2xxx: Order
  3xxx: Sync (fetch / persistence / realtime)
  4xxx: Payment
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Merchant/Menu ---

class MerchantNotFoundError(AppError):
    def __init__(self, merchant_public_id: str) -> None:
        super().__init__(1001, f"Merchant not found: {merchant_public_id}", 404)


class MenuItemNotFoundError(AppError):
    def __init__(self, menu_item_id: str) -> None:
        super().__init__(1002, f"Menu item not found: {menu_item_id}", 404)


# --- 2xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(2001, f"Order not found: {order_id}", 404)


class EmptyOrderError(AppError):
    def __init__(self) -> None:
        super().__init__(2002, "Order must contain at least one item", 422)


class InvalidTransitionError(AppError):
    def __init__(self, order_id: str, current: str, target: str, detail: str = "") -> None:
        self.order_id = order_id
        self.current = current
        self.target = target
        message = f"Order {order_id} cannot move from {current} to {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(2003, message, 409)


# --- 3xxx: Sync ---

class FetchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, f"Could not load orders: {detail}", 502)


class PersistenceError(AppError):
    def __init__(self, order_id: str, detail: str) -> None:
        self.order_id = order_id
        super().__init__(3002, f"Could not save order {order_id}: {detail}", 502)


class SubscriptionError(AppError):
    def __init__(self, channel_key: str, detail: str) -> None:
        self.channel_key = channel_key
        super().__init__(3003, f"Realtime channel {channel_key} failed: {detail}", 503)


# --- 4xxx: Payment ---

class PaymentFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Payment failed: {detail}", 402)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
