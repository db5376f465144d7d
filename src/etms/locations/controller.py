from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, now_local, optional_date, optional_datetime
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.security import api_key_required
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import LOCATION_RETENTION_DAYS, LOCATIONS_PAGE_SIZE
from ..core.enums import LocationActivity, PRIVILEGED_ROLES, STAFF_ROLES
from .model import Location, LocationFilters


def serialize_location(location: Location) -> dict:
    return {
        "id": location.location_id,
        "employee": {
            "id": location.employee_id,
            "name": location.employee_name,
            "employeeCode": location.employee_code,
        },
        "latitude": location.latitude,
        "longitude": location.longitude,
        "address": location.address,
        "accuracy": location.accuracy,
        "activity": location.activity.value,
        "timestamp": iso(location.recorded_at),
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.location_service

    @app.route("/api/locations", methods=["POST"], endpoint="record_location")
    @require()
    def record_location():
        location = service.record(current_identity(), json_body())
        return created(serialize_location(location))

    @app.route("/api/locations", methods=["GET"], endpoint="list_locations")
    @require()
    def list_locations():
        args = request.args
        page = PageRequest.from_args(args, default_limit=LOCATIONS_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        activity = args.get("activity")
        filters = LocationFilters(
            start=optional_datetime(args.get("startDate")),
            end=optional_datetime(args.get("endDate")),
            activity=require_enum(activity, LocationActivity, "activity") if activity else None,
        )
        result = service.list(
            current_identity(), filters, page, employee_id=optional_int(args.get("employeeId"), "employeeId")
        )
        return paged(result, serialize_location)

    @app.route("/api/locations/current", methods=["GET"], endpoint="current_locations")
    @require(*STAFF_ROLES)
    def current_locations():
        locations = service.current(current_identity())
        return ok([serialize_location(p) for p in locations], count=len(locations))

    @app.route("/api/locations/employee/<int:employee_id>/route", methods=["GET"], endpoint="employee_route")
    @require()
    def employee_route(employee_id: int):
        day = optional_date(request.args.get("date")) or now_local().date()
        points, distance = service.route(current_identity(), employee_id, day)
        return ok(
            {
                "date": day.isoformat(),
                "route": [serialize_location(p) for p in points],
                "totalDistance": distance,
                "totalPoints": len(points),
            }
        )

    @app.route("/api/locations/stats", methods=["GET"], endpoint="location_stats")
    @require()
    def location_stats():
        args = request.args
        return ok(
            service.stats(
                current_identity(),
                employee_id=optional_int(args.get("employeeId"), "employeeId"),
                start=optional_datetime(args.get("startDate")),
                end=optional_datetime(args.get("endDate")),
            )
        )

    @app.route("/api/locations/cleanup", methods=["DELETE"], endpoint="cleanup_locations")
    @api_key_required
    @require(*PRIVILEGED_ROLES)
    def cleanup_locations():
        days = request.args.get("days")
        deleted = service.cleanup(current_identity(), days)
        return ok({"deletedCount": deleted}, message=f"Cleaned up location data older than {days or LOCATION_RETENTION_DAYS} days")
