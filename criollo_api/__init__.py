"""
El Criollo REST API.

Point-of-sale backend for a Dominican restaurant: tables, reservations,
orders, invoicing with ITBIS, inventory, clients and reporting.
"""

__version__ = "1.0.0"
