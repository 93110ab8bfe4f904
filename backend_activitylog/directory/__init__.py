# Organization directory: cluster address set interface and resolver.

from backend_activitylog.directory.resolver import (
    ApplicationDirectory,
    StaticApplicationDirectory,
    resolve_address_set,
)

__all__ = [
    "ApplicationDirectory",
    "StaticApplicationDirectory",
    "resolve_address_set",
]
