"""Redmine REST client: executor, request logging, domain operations."""
