import logging
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.encoders import jsonable_encoder
from uuid import UUID
from datetime import date
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Rooms
    CreateRoomRequest, UpdateRoomRequest, SetRoomActiveRequest, RoomResponse, RoomRatesSchema,
    OccupancyResponse,
    # Availability
    AvailabilitySearchRequest, RoomAvailabilityResponse, ConflictResponse,
    SlotSuggestionsResponse, SlotSuggestionResponse,
    # Reservations
    QuoteRequest, QuoteResponse, CreateReservationRequest, ChangeReservationStateRequest,
    StayActionRequest, ReservationResponse, StayEventResponse, StayStatusResponse, StayEventFilter,
    # Auth
    Token, UserResponse
)

from api.dependencies import (
    get_current_active_user, get_current_staff_user, fake_users_db, get_user
)
from infrastructure.security import verify_password, create_access_token
from infrastructure.settings import LOG_LEVEL, OPENING_TIME, SLOT_STEP_MINUTES
from domain.auth import User

from application.services import RoomService, ReservationService, StayService, AvailabilityService
from infrastructure.repositories.in_memory_repositories import (
    InMemoryRoomRepository, InMemoryReservationRepository
)
from infrastructure.locks import InMemoryRoomLockManager
from infrastructure.clock import SystemClock
from domain.enums import ReservationStatus, TariffType, StayState, RoomOccupancy
from domain.exceptions import (
    DomainError, ValidationError, ConflictError, StateError, ExpiredError, NotFoundError
)
from domain.value_objects import RoomRates

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

app = FastAPI(
    title="Room Reservation API",
    description="Scheduling, pricing and stay lifecycle for a single lodging property",
    version="1.0.0"
)

# Initialize repositories
room_repo = InMemoryRoomRepository()
reservation_repo = InMemoryReservationRepository()
room_locks = InMemoryRoomLockManager()
clock = SystemClock()


# Dependency injection
def get_room_service() -> RoomService:
    return RoomService(room_repo, clock)


def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, room_repo, room_locks, clock)


def get_stay_service() -> StayService:
    return StayService(reservation_repo, room_locks, clock)


def get_availability_service() -> AvailabilityService:
    return AvailabilityService(
        room_repo, reservation_repo, clock,
        opening_time=OPENING_TIME,
        step_minutes=SLOT_STEP_MINUTES
    )


_ERROR_STATUS_CODES = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 400),
    (StateError, 400),
    (ExpiredError, 400),
)


def _to_http_error(error: DomainError) -> HTTPException:
    """Map a domain error onto an HTTP error response"""
    status_code = next(
        (code for error_type, code in _ERROR_STATUS_CODES if isinstance(error, error_type)), 400
    )

    if isinstance(error, ConflictError) and error.conflicts:
        detail = {
            "message": error.message,
            "conflicts": jsonable_encoder([_conflict_to_response(c) for c in error.conflicts])
        }
    elif isinstance(error, ValidationError) and error.field:
        detail = {"message": error.message, "field": error.field}
    else:
        detail = error.message
    return HTTPException(status_code=status_code, detail=detail)


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.name for item in ReservationStatus],
        "description": "Reservation status values: PENDING, CONFIRMED, CANCELLED, COMPLETED, RELEASED"
    }


@app.get("/api/enums/tariff-type", tags=["Enum Reference"])
async def get_tariff_types():
    """Get all TariffType enum values"""
    return {
        "values": [item.name for item in TariffType],
        "description": "Tariff type values: HOUR, NIGHT, MONTH"
    }


@app.get("/api/enums/stay-state", tags=["Enum Reference"])
async def get_stay_states():
    """Get all StayState enum values"""
    return {
        "values": [item.name for item in StayState],
        "description": "Stay state values: NOT_CHECKED_IN, CHECKED_IN, CHECKED_OUT"
    }


# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return UserResponse(
        user_id=current_user.user_id,
        username=current_user.username,
        email=current_user.email,
        full_name=current_user.full_name,
        role=current_user.role.value,
        disabled=current_user.disabled
    )


# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Register a room"""
    try:
        room = await service.create_room(
            code=request.code,
            name=request.name,
            rates=RoomRates(**request.rates.model_dump()),
            capacity=request.capacity,
            min_hours=request.min_hours,
            description=request.description
        )
        return _room_to_response(room, RoomOccupancy.AVAILABLE)
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    active: Optional[bool] = None,
    service: RoomService = Depends(get_room_service),
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """List rooms with their current occupancy"""
    rooms = await service.list_rooms(active=active)
    return [_room_to_response(r, await availability.room_occupancy(r.room_id)) for r in rooms]


@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get room by ID"""
    try:
        room = await service.get_room(room_id)
        return _room_to_response(room, await availability.room_occupancy(room_id))
    except DomainError as e:
        raise _to_http_error(e)


@app.patch("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Edit room rates, minimum hours, capacity or details"""
    try:
        room = await service.update_room(
            room_id,
            name=request.name,
            rates=RoomRates(**request.rates.model_dump()) if request.rates is not None else None,
            capacity=request.capacity,
            min_hours=request.min_hours,
            description=request.description
        )
        return _room_to_response(room, await availability.room_occupancy(room_id))
    except DomainError as e:
        raise _to_http_error(e)


@app.patch("/api/rooms/{room_id}/active", response_model=RoomResponse, tags=["Rooms"])
async def set_room_active(
    room_id: UUID,
    request: SetRoomActiveRequest,
    service: RoomService = Depends(get_room_service),
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Activate or deactivate a room"""
    try:
        room = await service.set_room_active(room_id, request.active)
        return _room_to_response(room, await availability.room_occupancy(room_id))
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/rooms/{room_id}/occupancy", response_model=OccupancyResponse, tags=["Rooms"])
async def get_room_occupancy(
    room_id: UUID,
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Occupancy projected from open check-ins"""
    try:
        occupancy = await availability.room_occupancy(room_id)
        return {"room_id": room_id, "occupancy": occupancy.value}
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/rooms/{room_id}/slots", response_model=SlotSuggestionsResponse, tags=["Availability"])
async def suggest_room_slots(
    room_id: UUID,
    day: date = Query(..., alias="date"),
    availability: AvailabilityService = Depends(get_availability_service),
    rooms: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Suggested hourly start times for a day"""
    try:
        suggestions = await availability.suggest_slots(room_id, day)
        room = await rooms.get_room(room_id)
        return SlotSuggestionsResponse(
            room_id=room_id,
            day=day,
            min_hours=room.min_hours,
            suggestions=[
                SlotSuggestionResponse(start=s.start, minimum_end=s.minimum_end, maximum_end=s.maximum_end)
                for s in suggestions
            ]
        )
    except DomainError as e:
        raise _to_http_error(e)


# ============================================================================
# AVAILABILITY & QUOTE ENDPOINTS
# ============================================================================

@app.post("/api/availability/search", response_model=List[RoomAvailabilityResponse], tags=["Availability"])
async def search_availability(
    request: AvailabilitySearchRequest,
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Per room availability for an interval"""
    try:
        results = await availability.query_availability(
            start_date=request.start_date,
            end_date=request.end_date,
            start_time=request.start_time,
            end_time=request.end_time,
            capacity=request.capacity,
            tariff_type=request.tariff_type,
            room_id=request.room_id
        )
        return [
            RoomAvailabilityResponse(
                room_id=r.room.room_id,
                code=r.room.code,
                name=r.room.name,
                available=r.available,
                conflicts=[_conflict_to_response(c) for c in r.conflicts]
            )
            for r in results
        ]
    except DomainError as e:
        raise _to_http_error(e)


@app.post("/api/quotes", response_model=QuoteResponse, tags=["Reservations"])
async def quote_stay(
    request: QuoteRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Price a stay without booking it"""
    try:
        quote = await service.quote(
            room_id=request.room_id,
            tariff_type=request.tariff_type,
            start_date=request.start_date,
            end_date=request.end_date,
            start_time=request.start_time,
            end_time=request.end_time
        )
        return QuoteResponse(
            room_id=request.room_id,
            tariff_type=quote.tariff_type.value,
            unit_count=quote.unit_count,
            unit_rate=quote.unit_rate,
            total_amount=quote.total.amount,
            currency=quote.total.currency
        )
    except DomainError as e:
        raise _to_http_error(e)


# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Create new reservation; staff bookings are confirmed immediately"""
    guest_id = current_user.user_id
    if request.guest_id is not None and request.guest_id != current_user.user_id:
        if not current_user.is_staff:
            raise HTTPException(status_code=403, detail="Only staff can book for another guest")
        guest_id = request.guest_id

    try:
        reservation = await service.create_reservation(
            room_id=request.room_id,
            guest_id=guest_id,
            tariff_type=request.tariff_type,
            start_date=request.start_date,
            end_date=request.end_date,
            start_time=request.start_time,
            end_time=request.end_time,
            payment_reference=request.payment_reference,
            guest_count=request.guest_count,
            created_by=current_user.username,
            actor_role=current_user.role
        )
        return _reservation_to_response(reservation)
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    status: Optional[ReservationStatus] = None,
    room_id: Optional[UUID] = None,
    tariff_type: Optional[TariffType] = None,
    guest_id: Optional[UUID] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_staff_user)
):
    """List reservations (staff)"""
    reservations = await service.list_reservations(
        status=status, room_id=room_id, tariff_type=tariff_type, guest_id=guest_id
    )
    return [_reservation_to_response(r) for r in reservations]


@app.get("/api/reservations/mine", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_my_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Reservations of the current user"""
    reservations = await service.list_reservations(guest_id=current_user.user_id)
    return [_reservation_to_response(r) for r in reservations]


@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    try:
        reservation = await service.get_reservation(reservation_id)
    except DomainError as e:
        raise _to_http_error(e)
    if not current_user.is_staff and reservation.guest_id != current_user.user_id:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)


@app.post("/api/reservations/{reservation_id}/status", response_model=ReservationResponse, tags=["Reservations"])
async def change_reservation_state(
    reservation_id: UUID,
    request: ChangeReservationStateRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Confirm, cancel or release a reservation"""
    try:
        reservation = await service.change_reservation_state(
            reservation_id, request.status, actor=current_user.username
        )
        return _reservation_to_response(reservation)
    except DomainError as e:
        raise _to_http_error(e)


@app.post("/api/reservations/{reservation_id}/check-in", response_model=ReservationResponse, tags=["Stays"])
async def check_in_guest(
    reservation_id: UUID,
    request: StayActionRequest,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Check in guest"""
    try:
        reservation = await service.check_in(reservation_id, current_user.username, request.notes)
        return _reservation_to_response(reservation)
    except DomainError as e:
        raise _to_http_error(e)


@app.post("/api/reservations/{reservation_id}/check-out", response_model=ReservationResponse, tags=["Stays"])
async def check_out_guest(
    reservation_id: UUID,
    request: StayActionRequest,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Check out guest"""
    try:
        reservation = await service.check_out(reservation_id, current_user.username, request.notes)
        return _reservation_to_response(reservation)
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/reservations/{reservation_id}/stay", response_model=StayStatusResponse, tags=["Stays"])
async def get_stay_status(
    reservation_id: UUID,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Current stay state of a reservation"""
    try:
        stay = await service.stay_status(reservation_id)
        return StayStatusResponse(
            reservation_id=stay.reservation_id,
            state=stay.state.value,
            checked_in_at=stay.checked_in_at,
            checked_out_at=stay.checked_out_at,
            checkout_ceiling=stay.checkout_ceiling
        )
    except DomainError as e:
        raise _to_http_error(e)


@app.get("/api/stay-events", response_model=List[StayEventResponse], tags=["Stays"])
async def list_stay_events(
    filters: StayEventFilter = Depends(),
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Check-in/check-out log"""
    try:
        events = await service.list_stay_events(
            reservation_id=filters.reservation_id,
            kind=filters.kind,
            since=filters.since,
            until=filters.until
        )
        return [_stay_event_to_response(e) for e in events]
    except DomainError as e:
        raise _to_http_error(e)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _room_to_response(room, occupancy: RoomOccupancy) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        code=room.code,
        name=room.name,
        capacity=room.capacity,
        rates=RoomRatesSchema(
            hourly=room.rates.hourly,
            nightly=room.rates.nightly,
            monthly=room.rates.monthly
        ),
        min_hours=room.min_hours,
        description=room.description,
        active=room.active,
        occupancy=occupancy.value,
        offered_tariffs=[t.value for t in room.rates.offered_tariffs()],
        version=room.version
    )


def _conflict_to_response(conflict) -> ConflictResponse:
    """Convert ReservationConflict to ConflictResponse"""
    return ConflictResponse(
        reservation_id=conflict.reservation_id,
        tariff_type=conflict.tariff_type.value,
        starts_at=conflict.starts_at,
        frees_at=conflict.frees_at
    )


def _stay_event_to_response(event) -> StayEventResponse:
    """Convert StayEvent entity to StayEventResponse"""
    return StayEventResponse(
        event_id=event.event_id,
        reservation_id=event.reservation_id,
        kind=event.kind.value,
        recorded_at=event.recorded_at,
        recorded_by=event.recorded_by,
        notes=event.notes
    )


def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        confirmation_code=reservation.confirmation_code,
        room_id=reservation.room_id,
        guest_id=reservation.guest_id,
        tariff_type=reservation.tariff_type.value,
        start_date=reservation.period.start_date,
        end_date=reservation.period.end_date,
        start_time=reservation.period.start_time,
        end_time=reservation.period.end_time,
        unit_count=reservation.unit_count,
        total_amount=reservation.total_amount.amount,
        currency=reservation.total_amount.currency,
        guest_count=reservation.guest_count,
        payment_reference=reservation.payment_reference,
        status=reservation.status.value,
        stay_state=reservation.stay_state.value,
        checkout_ceiling=reservation.checkout_ceiling(),
        stay_events=[_stay_event_to_response(e) for e in reservation.stay_events],
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        created_by=reservation.created_by,
        version=reservation.version
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
