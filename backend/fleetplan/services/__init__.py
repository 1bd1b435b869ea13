"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- recurring: Recurring order templates and order generation
- audit: Audit log sink
- webhooks: Outgoing webhook notification and delivery
"""
