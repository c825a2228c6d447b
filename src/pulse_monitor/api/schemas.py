"""Request and response bodies for the monitoring API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResolveAlertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    alert_id: Optional[str] = Field(None, alias="alertId")


class CreateAlertRequest(BaseModel):
    """Manual alert. Presence of type/message is checked by the core."""

    type: Optional[str] = None
    message: Optional[str] = None
    severity: str = "medium"


class AlertBody(BaseModel):
    id: str
    type: str
    message: str
    severity: str
    timestamp: int
    resolved: bool
    resolvedAt: Optional[int] = None


class MessageResponse(BaseModel):
    success: bool
    message: str


class CreateAlertResponse(BaseModel):
    success: bool = True
    alert: AlertBody
    message: str


class AlertListBody(BaseModel):
    active: List[AlertBody]
    resolved: List[AlertBody]
    total: int


class AlertListResponse(BaseModel):
    success: bool = True
    alerts: AlertListBody


class HealthMetricsBody(BaseModel):
    cpu: float
    memory: float
    disk: float
    errorRate: float
    avgResponseTime: float
    totalRequests: int
    totalErrors: int


class HealthAlertsBody(BaseModel):
    total: int
    critical: int
    recent: List[AlertBody]


class HealthResponse(BaseModel):
    success: bool
    status: str
    timestamp: int
    uptime: int
    metrics: HealthMetricsBody
    alerts: HealthAlertsBody


class StatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None
