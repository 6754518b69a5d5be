#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from checkout.data.models.user import UserModel
from checkout.data.models.store import StoreModel, ComplianceRuleModel
from checkout.data.models.product import ProductModel, ProductVariantModel
from checkout.data.models.cart import CartModel
from checkout.data.models.cart_item import CartItemModel
from checkout.data.models.order import OrderModel, OrderItemModel, OrderStatus

__all__ = [
    "UserModel",
    "StoreModel",
    "ComplianceRuleModel",
    "ProductModel",
    "ProductVariantModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatus",
]
