from .catalog import Product, Shipper, ShipperRate
from .orders import Order, OrderItem, OrderStatusHistory
from .expenses import Expense
from .settings import AppSettings, APP_SETTINGS_ID

__all__ = [
    'Product', 'Shipper', 'ShipperRate',
    'Order', 'OrderItem', 'OrderStatusHistory',
    'Expense',
    'AppSettings', 'APP_SETTINGS_ID',
]
