# storefront/models/__init__.py
from .user import *               # User, Address
from .catalog import *            # Product
from .order import *              # Order, OrderItem
from .order_status_log import *   # OrderStatusLog
from .stock_audit import *        # StockAudit
from .notification import *       # Notification
