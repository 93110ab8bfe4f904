# Description service: models, interface, HTTP adapter.

from backend_activitylog.describer.client import (
    DescriptionService,
    HttpDescriptionService,
)
from backend_activitylog.describer.models import Description, ScriptStep

__all__ = [
    "Description",
    "DescriptionService",
    "HttpDescriptionService",
    "ScriptStep",
]
