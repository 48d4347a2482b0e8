import logging
from contextlib import asynccontextmanager

import coloredlogs
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parkdesk.api.routes import api_router
from parkdesk.config import settings
from parkdesk.exception_handler.exception_handler import (console_state_exception_handler, custom_exception_handler,
                                                          form_validation_exception_handler,
                                                          parking_api_exception_handler)
from parkdesk.service.console import Console
from parkdesk.utils.errors import ConsoleStateError, FormValidationError, ParkingApiError
from parkdesk.utils.logging.logging_config import LOG_FORMAT, setup_logging


load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    console = getattr(app.state, "console", None) or Console()
    app.state.console = console
    async with console:
        logger.info(f"{settings.SERVICE_NAME} console ready ({settings.ENVIRONMENT})")
        yield


app = FastAPI(title="Parkdesk Operator Console", lifespan=lifespan)
app.include_router(api_router, prefix="/api")
app.add_exception_handler(ParkingApiError, parking_api_exception_handler)
app.add_exception_handler(ConsoleStateError, console_state_exception_handler)
app.add_exception_handler(FormValidationError, form_validation_exception_handler)
app.add_exception_handler(Exception, custom_exception_handler)
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


if settings.ENVIRONMENT == "dev":
    coloredlogs.install(level='debug', isatty=True, fmt=LOG_FORMAT,
                        level_styles={
                            'debug': {'color': 'white', 'bold': True},
                            'info': {'color': 'green', 'bold': True},
                            'error': {'color': 'red', 'bold': True},
                            'warning': {'color': 'yellow', 'bold': True},
                            'critical': {'color': 'red', 'bold': True}})
else:
    setup_logging()


@app.get("/")
def read_root():
    return {
        "message": "Welcome",
        "description": "Parkdesk operator console API.",
        "documentation": "For API documentation, visit /docs.",
        "parking_api": settings.PARKING_API_BASE_URL,
    }
