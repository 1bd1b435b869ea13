"""Audit log sink."""

from fleetplan.services.audit.audit_service import AuditService, get_entity_changes

__all__ = ["AuditService", "get_entity_changes"]
