"""SQLAlchemy ORM models for the travel kernel."""

from travel_kernel.models.audit import ApprovalAuditModel
from travel_kernel.models.request import TravelRequestModel, workflow_columns
from travel_kernel.models.sequence import RequestNumberCounter

__all__ = [
    "TravelRequestModel",
    "ApprovalAuditModel",
    "RequestNumberCounter",
    "workflow_columns",
]
