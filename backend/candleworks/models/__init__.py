from .catalog import Product, ProductPriceHistory, Material, ProductMaterial
from .customers import Customer
from .sales import Sale, SaleItem
from .orders import Order, OrderItem
from .finance import InstallmentPayment, InstallmentPaymentStatus
from .settings import StoreSettings

__all__ = [
    'Product', 'ProductPriceHistory', 'Material', 'ProductMaterial',
    'Customer',
    'Sale', 'SaleItem',
    'Order', 'OrderItem',
    'InstallmentPayment', 'InstallmentPaymentStatus',
    'StoreSettings',
]
