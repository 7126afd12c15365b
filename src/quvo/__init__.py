"""quvo - Async data access and cache layer for the Quvo sales dashboard."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("quvo")
except PackageNotFoundError:
    __version__ = "0+local"
from quvo.cache import CacheKeyClass, TtlCache, TtlPolicy, cache_key
from quvo.client import QuvoClient
from quvo.config import QuvoConfig, QuvoEnvironment
from quvo.customers import CustomerDirectory
from quvo.exceptions import (
    QuvoAuthenticationError,
    QuvoConfigError,
    QuvoError,
    QuvoPermissionDeniedError,
    QuvoRequestFailedError,
    QuvoStorageError,
    QuvoTransportError,
)
from quvo.facilities import FacilityIndex, SearchFilters
from quvo.geo import haversine_miles
from quvo.models import (
    Bay,
    Customer,
    DashboardSnapshot,
    Facility,
    Product,
    Site,
    SiteProduct,
    User,
    UserRole,
    VolumeReading,
)
from quvo.permissions import PermissionPolicy, RolePermissions
from quvo.readings import StaticReadingProvider, VolumeReadingProvider
from quvo.session import Session, SessionStore
from quvo.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "__version__",
    "Bay",
    "CacheKeyClass",
    "Customer",
    "CustomerDirectory",
    "DashboardSnapshot",
    "Facility",
    "FacilityIndex",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "PermissionPolicy",
    "Product",
    "QuvoAuthenticationError",
    "QuvoClient",
    "QuvoConfig",
    "QuvoConfigError",
    "QuvoEnvironment",
    "QuvoError",
    "QuvoPermissionDeniedError",
    "QuvoRequestFailedError",
    "QuvoStorageError",
    "QuvoTransportError",
    "RolePermissions",
    "SearchFilters",
    "Session",
    "SessionStore",
    "Site",
    "SiteProduct",
    "StaticReadingProvider",
    "TtlCache",
    "TtlPolicy",
    "User",
    "UserRole",
    "VolumeReading",
    "VolumeReadingProvider",
    "cache_key",
    "haversine_miles",
]
