from enum import Enum
from typing import Optional

from pydantic import BaseModel


class HealthStatus(str, Enum):
    """Health state reported by the runtime's health check.

    UNKNOWN covers both "no health state yet" and anything the runtime
    reports that we do not recognise; it is never treated as UNHEALTHY.
    """

    UNKNOWN = "unknown"
    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "HealthStatus":
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class DeploymentResult(BaseModel):
    container_id: Optional[str] = None
    container_name: str
    image_ref: str
    url: str
    health_url: str
    status: HealthStatus = HealthStatus.UNKNOWN
    attempts: int = 0
