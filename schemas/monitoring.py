"""schemas/monitoring.py - Request models for the monitoring dashboard."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

ComponentStatus = Literal["healthy", "degraded", "down", "unknown"]
LogLevel = Literal["all", "info", "warning", "error"]


class AmadeusStatusUpdate(BaseModel):
    status: ComponentStatus = "unknown"
    error: Optional[str] = Field(None, max_length=500)
