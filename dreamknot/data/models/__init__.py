# every model is imported here so SQLAlchemy registers it in Base.metadata

from dreamknot.data.models.user import UserModel
from dreamknot.data.models.address import AddressModel
from dreamknot.data.models.cart import CartModel
from dreamknot.data.models.cart_item import CartItemModel
from dreamknot.data.models.discount_code import DiscountCodeModel
from dreamknot.data.models.checkout_session import CheckoutSessionModel
from dreamknot.data.models.order import OrderModel
from dreamknot.data.models.order_item import OrderItemModel
from dreamknot.data.models.review import ReviewModel
from dreamknot.data.models.wishlist_item import WishlistItemModel

__all__ = [
    "UserModel",
    "AddressModel",
    "CartModel",
    "CartItemModel",
    "DiscountCodeModel",
    "CheckoutSessionModel",
    "OrderModel",
    "OrderItemModel",
    "ReviewModel",
    "WishlistItemModel",
]
