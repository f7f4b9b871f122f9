"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming alert payloads
- Response models for API responses
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class Location(BaseModel):
    """Caller geolocation. Either coordinate may be missing."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AlertRequest(BaseModel):
    """
    Incoming emergency alert.

    phoneNumber and message are declared optional so that their absence is
    reported through the dispatch error contract (INVALID_ARGUMENT) instead
    of a framework 422.
    """
    phone_number: Optional[str] = Field(
        None,
        alias="phoneNumber",
        description="Recipient phone number"
    )
    message: Optional[str] = Field(
        None,
        description="Alert text"
    )
    location: Optional[Location] = Field(
        None,
        description="Where the alert originated"
    )
    intensity: Optional[Union[int, float]] = Field(
        None,
        description="Severity reading, rendered as sent"
    )
    timestamp: Optional[str] = Field(
        None,
        description="Caller-supplied time, display only"
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "phoneNumber": "+14155550100",
                    "message": "ACCIDENT ALERT! Possible crash detected.",
                    "location": {"latitude": 40.7128, "longitude": -74.006},
                    "intensity": 5,
                    "timestamp": "2025-01-15T10:00:00Z"
                }
            ]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class DispatchResponse(BaseModel):
    """Response model for a successful dispatch."""
    success: bool = Field(default=True)
    message_id: str = Field(..., alias="messageId", description="Gateway message identifier")
    status: Optional[str] = Field(None, description="Gateway-reported status")
    message: str = Field(default="SMS sent successfully")

    model_config = {"populate_by_name": True}


class ErrorDetail(BaseModel):
    status: str = Field(..., description="Stable error kind, e.g. INVALID_ARGUMENT")
    message: str = Field(..., description="Human-readable reason")


class ErrorResponse(BaseModel):
    """Response model for dispatch errors."""
    error: ErrorDetail


class ListErrorResponse(BaseModel):
    """Response model for listing errors."""
    error: str


class AlertRecordResponse(BaseModel):
    """
    A stored alert record as returned by GET /alerts.
    Absent optional fields are omitted from the response.
    """
    id: int
    phone_number: str = Field(..., alias="phoneNumber")
    message: Optional[str] = None
    status: str = Field(..., description="sent or failed")
    gateway_message_id: Optional[str] = Field(None, alias="gatewayMessageId")
    gateway_status: Optional[str] = Field(None, alias="gatewayStatus")
    error: Optional[str] = None
    created_at: str = Field(..., alias="createdAt", description="Server time ISO-8601 UTC")

    model_config = {"populate_by_name": True}


class AlertsListResponse(BaseModel):
    """Response model for GET /alerts, newest first."""
    alerts: list[AlertRecordResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
