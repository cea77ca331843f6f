import json
import logging
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.availability.calculator import compute_daily_availability, parse_availability_date
from app.availability.intervals import BookingInterval
from app.availability.policy import load_availability_policy
from app.availability.repository import (
    fetch_confirmed_counts,
    fetch_existing_intervals,
    fetch_packages,
)
from app.bookings.create_request import (
    create_booking_request,
    parse_create_booking_request_args,
)
from app.bookings.extension import (
    apply_extension,
    check_extension_conflicts,
    parse_extension_args,
)
from app.bookings.manage_request import (
    accept_booking_request,
    cancel_booking_request,
    create_and_confirm_booking,
    reject_booking_request,
)
from app.db.session import SessionLocal
from app.errors import (
    BookingNotFoundError,
    ConflictError,
    InvalidBookingStateError,
    InvalidBookingTimeError,
    InvalidDateError,
    PackageNotFoundError,
)
from app.security.dependencies import require_admin_api_key, require_staff_api_key


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("photobooth.backend")


logger = configure_logging()
app = FastAPI(title="Photobooth Booking Backend")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/availability/summary")
async def availability_summary(
    start: str | None = None,
    end: str | None = None,
) -> JSONResponse:
    policy = load_availability_policy()
    today = date.today()
    try:
        start_date = _parse_optional_date(start, today, policy)
        end_date = _parse_optional_date(end, today, policy)
    except InvalidDateError as exc:
        return _error_response(400, "INVALID_DATE", str(exc))
    if start_date and end_date and end_date < start_date:
        return _error_response(400, "INVALID_DATE", "Invalid date supplied")

    db = SessionLocal()
    try:
        counts = fetch_confirmed_counts(db=db, start=start_date, end=end_date)
        return JSONResponse(content={"counts": counts})
    except Exception:
        logger.exception(json.dumps({"event": "availability_summary_failed"}))
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue loading availability.")
    finally:
        db.close()


@app.get("/v1/availability/day")
async def availability_day(
    date_param: str | None = Query(default=None, alias="date"),
    package_id: int | None = None,
) -> JSONResponse:
    policy = load_availability_policy()
    try:
        target_date = parse_availability_date(
            date_param,
            today=date.today(),
            max_past_days=policy.max_past_days,
            max_future_days=policy.max_future_days,
        )
    except InvalidDateError as exc:
        return _error_response(400, "INVALID_DATE", str(exc))

    db = SessionLocal()
    try:
        packages = fetch_packages(db=db)
        intervals = fetch_existing_intervals(
            db=db,
            target_date=target_date,
            policy=policy,
            packages=packages,
        )
        availability = compute_daily_availability(
            target_date=target_date,
            packages=packages,
            intervals=intervals,
            policy=policy,
            package_id=package_id,
        )
    except PackageNotFoundError as exc:
        return _error_response(404, "PACKAGE_NOT_FOUND", str(exc))
    except Exception:
        logger.exception(
            json.dumps({"event": "availability_day_failed", "date": target_date.isoformat()})
        )
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue loading availability.")
    finally:
        db.close()

    availability["generatedAt"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(content=availability)


@app.post("/v1/customer/bookingRequest")
async def create_booking_request_endpoint(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_request_args(payload)
    except ValidationError as exc:
        return _validation_error_response(exc)

    policy = load_availability_policy()
    db = SessionLocal()
    try:
        booking = create_booking_request(db=db, args=args, policy=policy)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "message": "Booking created", "data": {"booking": booking}},
        )
    except ConflictError as exc:
        return _conflict_response(exc)
    except PackageNotFoundError as exc:
        return _error_response(400, "PACKAGE_NOT_FOUND", str(exc))
    except InvalidBookingTimeError as exc:
        return _error_response(400, "INVALID_BOOKING_TIME", str(exc))
    except Exception:
        db.rollback()
        logger.exception(json.dumps({"event": "booking_request_create_failed"}))
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue creating booking.")
    finally:
        db.close()


@app.post("/v1/admin/bookings", dependencies=[Depends(require_admin_api_key)])
async def create_and_confirm_booking_endpoint(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_request_args(payload)
    except ValidationError as exc:
        return _validation_error_response(exc)

    policy = load_availability_policy()
    db = SessionLocal()
    try:
        data = create_and_confirm_booking(db=db, args=args, policy=policy)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "message": "Booking confirmed", "data": data},
        )
    except ConflictError as exc:
        return _conflict_response(exc)
    except PackageNotFoundError as exc:
        return _error_response(400, "PACKAGE_NOT_FOUND", str(exc))
    except InvalidBookingTimeError as exc:
        return _error_response(400, "INVALID_BOOKING_TIME", str(exc))
    except Exception:
        db.rollback()
        logger.exception(json.dumps({"event": "booking_create_and_confirm_failed"}))
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue creating booking.")
    finally:
        db.close()


@app.patch("/v1/customer/bookingRequest/{request_id}/cancel")
async def cancel_booking_request_endpoint(
    request_id: int,
    x_user_id: int | None = Header(default=None, alias="X-User-Id"),
) -> JSONResponse:
    db = SessionLocal()
    try:
        data = cancel_booking_request(db=db, request_id=request_id, user_id=x_user_id)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingNotFoundError as exc:
        return _error_response(404, "BOOKING_NOT_FOUND", str(exc))
    except InvalidBookingStateError as exc:
        return _error_response(400, "INVALID_BOOKING_STATE", str(exc))
    except Exception:
        db.rollback()
        logger.exception(
            json.dumps({"event": "booking_request_cancel_failed", "request_id": request_id})
        )
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue cancelling booking.")
    finally:
        db.close()


@app.patch(
    "/v1/admin/bookingRequest/{request_id}/accept",
    dependencies=[Depends(require_admin_api_key)],
)
async def accept_booking_request_endpoint(request_id: int) -> JSONResponse:
    policy = load_availability_policy()
    db = SessionLocal()
    try:
        data = accept_booking_request(db=db, request_id=request_id, policy=policy)
        return JSONResponse(content={"ok": True, "data": data})
    except ConflictError as exc:
        return _conflict_response(exc)
    except (BookingNotFoundError, PackageNotFoundError) as exc:
        return _error_response(404, "BOOKING_NOT_FOUND", str(exc))
    except InvalidBookingStateError as exc:
        return _error_response(400, "INVALID_BOOKING_STATE", str(exc))
    except InvalidBookingTimeError as exc:
        db.rollback()
        return _error_response(400, "INVALID_BOOKING_TIME", str(exc))
    except Exception:
        db.rollback()
        logger.exception(
            json.dumps({"event": "booking_request_accept_failed", "request_id": request_id})
        )
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue accepting booking.")
    finally:
        db.close()


@app.patch(
    "/v1/admin/bookingRequest/{request_id}/reject",
    dependencies=[Depends(require_admin_api_key)],
)
async def reject_booking_request_endpoint(request_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        data = reject_booking_request(db=db, request_id=request_id)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingNotFoundError as exc:
        return _error_response(404, "BOOKING_NOT_FOUND", str(exc))
    except InvalidBookingStateError as exc:
        return _error_response(400, "INVALID_BOOKING_STATE", str(exc))
    except Exception:
        db.rollback()
        logger.exception(
            json.dumps({"event": "booking_request_reject_failed", "request_id": request_id})
        )
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue rejecting booking.")
    finally:
        db.close()


@app.get(
    "/v1/admin/confirmed-bookings/{booking_id}/extension-conflicts",
    dependencies=[Depends(require_admin_api_key)],
)
@app.get(
    "/v1/staff/confirmed-bookings/{booking_id}/extension-conflicts",
    dependencies=[Depends(require_staff_api_key)],
)
async def extension_conflicts_endpoint(
    booking_id: int,
    extension_hours: int = Query(ge=0),
) -> JSONResponse:
    policy = load_availability_policy()
    db = SessionLocal()
    try:
        conflicts = check_extension_conflicts(
            db=db,
            booking_id=booking_id,
            extension_hours=extension_hours,
            policy=policy,
        )
    except BookingNotFoundError as exc:
        return _error_response(404, "BOOKING_NOT_FOUND", str(exc))
    except InvalidBookingStateError as exc:
        return _error_response(400, "INVALID_BOOKING_STATE", str(exc))
    except InvalidBookingTimeError as exc:
        return _error_response(400, "INVALID_BOOKING_TIME", str(exc))
    except Exception:
        logger.exception(
            json.dumps({"event": "extension_preflight_failed", "booking_id": booking_id})
        )
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue checking extension.")
    finally:
        db.close()

    return JSONResponse(
        content={
            "ok": True,
            "data": {
                "booking_id": booking_id,
                "extension_hours": extension_hours,
                "has_conflicts": bool(conflicts),
                "conflicts": [_serialize_conflict(item) for item in conflicts],
            },
        }
    )


@app.patch(
    "/v1/admin/confirmed-bookings/{booking_id}/extension",
    dependencies=[Depends(require_admin_api_key)],
)
@app.patch(
    "/v1/staff/confirmed-bookings/{booking_id}/extension",
    dependencies=[Depends(require_staff_api_key)],
)
async def apply_extension_endpoint(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_extension_args(payload)
    except ValidationError as exc:
        return _validation_error_response(exc)

    policy = load_availability_policy()
    db = SessionLocal()
    try:
        data = apply_extension(
            db=db,
            booking_id=booking_id,
            extension_hours=args.extension_hours,
            policy=policy,
        )
        return JSONResponse(content={"ok": True, "data": {"booking": data}})
    except ConflictError as exc:
        return _conflict_response(exc)
    except (BookingNotFoundError, PackageNotFoundError) as exc:
        return _error_response(404, "BOOKING_NOT_FOUND", str(exc))
    except InvalidBookingStateError as exc:
        return _error_response(400, "INVALID_BOOKING_STATE", str(exc))
    except InvalidBookingTimeError as exc:
        return _error_response(400, "INVALID_BOOKING_TIME", str(exc))
    except Exception:
        db.rollback()
        logger.exception(json.dumps({"event": "extension_apply_failed", "booking_id": booking_id}))
        return _error_response(500, "SYSTEM_DOWN", "Temporary issue extending booking.")
    finally:
        db.close()


def _parse_optional_date(raw: str | None, today: date, policy) -> date | None:
    if raw is None:
        return None
    return parse_availability_date(
        raw,
        today=today,
        max_past_days=policy.max_past_days,
        max_future_days=policy.max_future_days,
    )


def _error_response(status_code: int, error_code: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error_code": error_code, "message": message, **extra},
    )


def _validation_error_response(error: ValidationError) -> JSONResponse:
    return _error_response(400, "INVALID_ARGS", f"Invalid args: {error.errors()[0]['msg']}")


def _conflict_response(error: ConflictError) -> JSONResponse:
    return _error_response(
        409,
        "BOOKING_CONFLICT",
        error.message,
        conflicts=error.conflict_ids,
    )


def _serialize_conflict(item: BookingInterval) -> dict[str, Any]:
    return {
        "request_id": item.request_id,
        "booking_id": item.booking_id,
        "event_name": item.event_name,
        "status": item.status,
        "event_start": item.event_start.isoformat(),
        "event_end": item.event_end.isoformat(),
        "buffer_start": item.buffer_start.isoformat(),
        "buffer_end": item.buffer_end.isoformat(),
    }
