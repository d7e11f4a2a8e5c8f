"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import ReservationStatus, StayEventKind


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class RoomRatesSchema(BaseModel):
    """Room rates DTO"""
    hourly: Optional[Decimal] = Field(None, ge=0)
    nightly: Optional[Decimal] = Field(None, ge=0)
    monthly: Optional[Decimal] = Field(None, ge=0)


class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    code: str
    name: str
    capacity: int = Field(1, ge=1)
    rates: RoomRatesSchema
    min_hours: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class UpdateRoomRequest(BaseModel):
    """Update room request DTO; omitted fields stay unchanged"""
    name: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    rates: Optional[RoomRatesSchema] = None
    min_hours: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class SetRoomActiveRequest(BaseModel):
    """Activate/deactivate room request DTO"""
    active: bool


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    code: str
    name: str
    capacity: int
    rates: RoomRatesSchema
    min_hours: int
    description: Optional[str] = None
    active: bool
    occupancy: str
    offered_tariffs: List[str]
    version: int


class OccupancyResponse(BaseModel):
    """Room occupancy response DTO"""
    room_id: UUID
    occupancy: str


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class AvailabilitySearchRequest(BaseModel):
    """Availability search request DTO"""
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity: Optional[int] = Field(None, ge=1)
    tariff_type: Optional[str] = None
    room_id: Optional[UUID] = None


class ConflictResponse(BaseModel):
    """Conflicting reservation DTO"""
    reservation_id: UUID
    tariff_type: str
    starts_at: datetime
    frees_at: datetime


class RoomAvailabilityResponse(BaseModel):
    """Availability row DTO"""
    room_id: UUID
    code: str
    name: str
    available: bool
    conflicts: List[ConflictResponse] = []


class SlotSuggestionResponse(BaseModel):
    """Suggested hourly slot DTO"""
    start: time
    minimum_end: time
    maximum_end: time


class SlotSuggestionsResponse(BaseModel):
    """Slot suggestions DTO"""
    room_id: UUID
    day: date
    min_hours: int
    suggestions: List[SlotSuggestionResponse]


# ============================================================================
# QUOTE & RESERVATION SCHEMAS
# ============================================================================

class QuoteRequest(BaseModel):
    """Quote request DTO"""
    room_id: UUID
    tariff_type: str
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class QuoteResponse(BaseModel):
    """Quote response DTO"""
    room_id: UUID
    tariff_type: str
    unit_count: int
    unit_rate: Decimal
    total_amount: Decimal
    currency: str


class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    room_id: UUID
    tariff_type: str
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    payment_reference: Optional[str] = None
    guest_count: int = Field(1, ge=1)
    guest_id: Optional[UUID] = Field(None, description="Staff only: book on behalf of a guest")


class ChangeReservationStateRequest(BaseModel):
    """Change reservation state request DTO"""
    status: ReservationStatus


class StayActionRequest(BaseModel):
    """Check-in/check-out request DTO"""
    notes: Optional[str] = None


class StayEventResponse(BaseModel):
    """Stay event response DTO"""
    event_id: UUID
    reservation_id: UUID
    kind: str
    recorded_at: datetime
    recorded_by: str
    notes: Optional[str] = None


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    confirmation_code: str
    room_id: UUID
    guest_id: UUID
    tariff_type: str
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    unit_count: int
    total_amount: Decimal
    currency: str
    guest_count: int
    payment_reference: Optional[str] = None
    status: str
    stay_state: str
    checkout_ceiling: Optional[datetime] = None
    stay_events: List[StayEventResponse]
    created_at: datetime
    modified_at: datetime
    created_by: str
    version: int


class StayStatusResponse(BaseModel):
    """Stay status response DTO"""
    reservation_id: UUID
    state: str
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    checkout_ceiling: Optional[datetime] = None


class StayEventFilter(BaseModel):
    """Stay event query DTO"""
    reservation_id: Optional[UUID] = None
    kind: Optional[StayEventKind] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    disabled: bool
