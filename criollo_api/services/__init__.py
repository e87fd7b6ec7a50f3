"""
Services module for business logic.

- domain/: application services used by the routers
- billing/: invoice arithmetic and document numbering
- notifications/: transactional email over SMTP
"""
