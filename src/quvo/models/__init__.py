"""Data models for quvo payloads and reference datasets."""

from quvo.models._base import QuvoBaseModel, QuvoEnum
from quvo.models.bay import Bay, VolumeReading
from quvo.models.customer import Customer, Site, SiteProduct
from quvo.models.dashboard import DashboardSnapshot
from quvo.models.facility import Facility, Product, ProductCatalog
from quvo.models.user import User, UserRole

__all__ = [
    "Bay",
    "Customer",
    "DashboardSnapshot",
    "Facility",
    "Product",
    "ProductCatalog",
    "QuvoBaseModel",
    "QuvoEnum",
    "Site",
    "SiteProduct",
    "User",
    "UserRole",
    "VolumeReading",
]
