"""Exceptions, schemas, validators and small helpers."""
