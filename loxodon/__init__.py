"""Multi-tenant administration API: customers, users, roles and audit trail."""

__version__ = "1.0.0"
