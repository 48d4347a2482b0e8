import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from parkdesk.dependencies.deps import get_console
from parkdesk.schema.filter_schema import SessionFilter, VehicleFilter
from parkdesk.service.console import Console
from parkdesk.utils.common import api_response

logger = logging.getLogger(__name__)

listings_router = APIRouter()


@listings_router.get("/v1/sessions")
async def get_sessions(filters: Annotated[SessionFilter, Query()], console: Console = Depends(get_console)):
    sessions = await console.load_sessions(filters)
    return api_response(message="Sessions", status="success",
                        data=[session.model_dump(mode="json") for session in sessions])


@listings_router.get("/v1/sessions/vehicle/{number_plate}")
async def get_vehicle_sessions(number_plate: str, console: Console = Depends(get_console)):
    history = await console.sessions_for_vehicle(number_plate)
    return api_response(message="Vehicle sessions", status="success", data=history.model_dump(mode="json"))


@listings_router.get("/v1/sessions/{session_id}")
async def get_session(session_id: str, console: Console = Depends(get_console)):
    session = await console.load_session(session_id)
    return api_response(message="Session", status="success", data=session.model_dump(mode="json"))


@listings_router.get("/v1/vehicles")
async def get_vehicles(filters: Annotated[VehicleFilter, Query()], console: Console = Depends(get_console)):
    vehicles = await console.load_vehicles(filters)
    return api_response(
        message="Vehicles",
        status="success",
        data=[
            {**vehicle.model_dump(mode="json", exclude={"sessions"}),
             "is_parked": vehicle.active_session is not None,
             "total_sessions": len(vehicle.sessions)}
            for vehicle in vehicles
        ],
    )


@listings_router.get("/v1/staff")
async def get_staff(console: Console = Depends(get_console)):
    staff = await console.load_staff()
    return api_response(message="Staff", status="success", data=[member.model_dump(mode="json") for member in staff])
