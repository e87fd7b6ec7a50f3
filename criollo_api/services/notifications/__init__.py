"""Transactional email."""

from .email_service import EmailContent, EmailService, get_email_service

__all__ = ["EmailContent", "EmailService", "get_email_service"]
