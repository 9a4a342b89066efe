from .users import User, Farmer, UserAddress, UserFavorite
from .catalog import ProductCategory, Product, ProductReview
from .orders import ShoppingCart, CartItem, Order, OrderItem, OrderTracking
from .payments import PaymentTransaction, PaymentMethod
from .verification import FarmerVerification, OtpVerification
from .warehouse import WarehouseLocation, WarehouseInventory, StockMovement
from .delivery import DeliveryPartner
from .notifications import Notification
from .reviews import SellerRating
from .admin import AuditLog, AdminApproval

__all__ = [
    'User', 'Farmer', 'UserAddress', 'UserFavorite',
    'ProductCategory', 'Product', 'ProductReview',
    'ShoppingCart', 'CartItem', 'Order', 'OrderItem', 'OrderTracking',
    'PaymentTransaction', 'PaymentMethod',
    'FarmerVerification', 'OtpVerification',
    'WarehouseLocation', 'WarehouseInventory', 'StockMovement',
    'DeliveryPartner',
    'Notification',
    'SellerRating',
    'AuditLog', 'AdminApproval',
]
