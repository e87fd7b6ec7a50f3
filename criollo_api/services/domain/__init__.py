"""
Domain Services - application layer.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from criollo_api.services.domain import TableService

    # In router
    service = TableService(db)
    tables = service.list_tables()
"""

from .table_service import TableService, set_table_status
from .inventory_service import InventoryService
from .order_service import OrderService, order_to_output
from .reservation_service import ReservationService, reservation_to_output
from .billing_service import BillingService, invoice_to_output
from .catalog_service import CatalogService, combo_to_output, product_to_output
from .client_service import ClientService
from .auth_service import AuthService, generate_temporary_password, user_info, user_to_output
from .staff_service import EmployeeService
from .report_service import ReportService

__all__ = [
    "TableService",
    "set_table_status",
    "InventoryService",
    "OrderService",
    "order_to_output",
    "ReservationService",
    "reservation_to_output",
    "BillingService",
    "invoice_to_output",
    "CatalogService",
    "combo_to_output",
    "product_to_output",
    "ClientService",
    "AuthService",
    "generate_temporary_password",
    "user_info",
    "user_to_output",
    "EmployeeService",
    "ReportService",
]
