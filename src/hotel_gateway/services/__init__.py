"""Service clients for the Metasphere CRM."""

from .availability_service import AvailabilityService, Guests, SearchSummary
from .metasphere_client import MetasphereClient

__all__ = [
    "AvailabilityService",
    "Guests",
    "MetasphereClient",
    "SearchSummary",
]
