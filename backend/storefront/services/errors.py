from typing import Dict, Iterable, List, Optional


class StorefrontException(Exception):
    """
    Base for every condition the checkout core reports to its callers.

    Subclasses set `status_code` (used by the routers when mapping to an
    HTTPException) and `code` (a stable machine-readable name). Extra context
    goes into `extra` and is returned by detail().
    """

    status_code = 400
    code = "error"

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def detail(self) -> Dict:
        return {"code": self.code, "message": self.message, **self.extra}


# --- validation -------------------------------------------------------------


class InvalidQuantity(StorefrontException):
    code = "invalid_quantity"


class InvalidGoldPrice(StorefrontException):
    code = "invalid_gold_price"


class EmptyCart(StorefrontException):
    code = "empty_cart"

    def __init__(self, user_id: int):
        super().__init__("Cart is empty. Cannot create order.", user_id=user_id)


class AddressOwnershipMismatch(StorefrontException):
    status_code = 403
    code = "address_ownership_mismatch"

    def __init__(self, address_id: int):
        super().__init__(
            f"Address {address_id} does not belong to this user",
            address_id=address_id,
        )


class TrackingNumberRequired(StorefrontException):
    code = "tracking_number_required"

    def __init__(self, order_id: int):
        super().__init__(
            f"Order {order_id} cannot ship without a tracking number",
            order_id=order_id,
        )


# --- not found --------------------------------------------------------------


class NotFound(StorefrontException):
    status_code = 404
    code = "not_found"


class ProductNotFound(NotFound):
    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(f"Product with id={product_id} not found", product_id=product_id)


class CartItemNotFound(NotFound):
    code = "cart_item_not_found"

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} is not in the cart", product_id=product_id
        )


class AddressNotFound(NotFound):
    code = "address_not_found"

    def __init__(self, address_id: int):
        super().__init__(f"Address with id={address_id} not found", address_id=address_id)


class GoldPriceNotFound(NotFound):
    code = "gold_price_not_found"

    def __init__(self, gold_price_id: int):
        super().__init__(
            f"Gold price with id={gold_price_id} not found", gold_price_id=gold_price_id
        )


class OrderNotFound(NotFound):
    code = "order_not_found"

    def __init__(self, order_id: int):
        super().__init__(f"Order with id={order_id} not found", order_id=order_id)


class PaymentNotFound(NotFound):
    code = "payment_not_found"

    def __init__(self, payment_id: int, order_id: Optional[int] = None):
        super().__init__(
            f"Payment with id={payment_id} not found for order {order_id}",
            payment_id=payment_id,
            order_id=order_id,
        )


# --- conflicts --------------------------------------------------------------


class Conflict(StorefrontException):
    status_code = 409
    code = "conflict"


class InsufficientStock(Conflict):
    code = "insufficient_stock"

    def __init__(self, product_ids: Iterable[int]):
        self.product_ids: List[int] = sorted(set(product_ids))
        super().__init__(
            "Not enough stock for product(s): "
            + ", ".join(str(p) for p in self.product_ids),
            product_ids=self.product_ids,
        )


class InvalidStateTransition(Conflict):
    code = "invalid_state_transition"

    def __init__(self, current: str, requested: str, entity: str = "order"):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move {entity} from {current!r} to {requested!r}",
            entity=entity,
            current=current,
            requested=requested,
        )


class PaymentConflict(Conflict):
    code = "payment_conflict"


class ProductInUse(Conflict):
    code = "product_in_use"

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} is referenced by orders and cannot be deleted",
            product_id=product_id,
        )


class StockLockTimeout(Conflict):
    code = "stock_lock_timeout"


# --- unavailable ------------------------------------------------------------


class PriceUnavailable(StorefrontException):
    status_code = 503
    code = "price_unavailable"
