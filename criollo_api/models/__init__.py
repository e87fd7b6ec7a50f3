"""
SQLAlchemy ORM Models Package.

- base: Base class, IdType and AuditMixin
- user: Role, User, Employee
- customer: Client
- catalog: Category, Product, Combo, ComboProduct
- inventory: Inventory, InventoryMovement
- table: Table
- reservation: Reservation
- order: Order, OrderItem
- billing: Invoice
- notification: EmailTransaction
"""

from .base import AuditMixin, Base, IdType
from .user import Employee, Role, User
from .customer import Client
from .catalog import Category, Combo, ComboProduct, Product
from .inventory import Inventory, InventoryMovement
from .table import Table
from .reservation import Reservation
from .order import Order, OrderItem
from .billing import Invoice
from .notification import EmailTransaction

__all__ = [
    "AuditMixin",
    "Base",
    "IdType",
    "Role",
    "User",
    "Employee",
    "Client",
    "Category",
    "Product",
    "Combo",
    "ComboProduct",
    "Inventory",
    "InventoryMovement",
    "Table",
    "Reservation",
    "Order",
    "OrderItem",
    "Invoice",
    "EmailTransaction",
]
