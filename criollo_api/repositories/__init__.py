"""
Repository layer: data access with eager loading and common filters.
"""

from .base import BaseRepository, RepositoryFilters
from .client import ClientRepository
from .invoice import InvoiceFilters, InvoiceRepository
from .order import OrderFilters, OrderRepository
from .product import ProductFilters, ProductRepository
from .reservation import ReservationFilters, ReservationRepository
from .table import TableFilters, TableRepository

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "ClientRepository",
    "InvoiceFilters",
    "InvoiceRepository",
    "OrderFilters",
    "OrderRepository",
    "ProductFilters",
    "ProductRepository",
    "ReservationFilters",
    "ReservationRepository",
    "TableFilters",
    "TableRepository",
]
