"""Marketplace business logic, independent of the HTTP layer."""
