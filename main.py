import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Form, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from controllers.auth_controller import current_user_endpoint, login_callback_endpoint, login_url_endpoint, logout_endpoint
from controllers.booking_controller import (
    book_property_endpoint,
    booking_status_endpoint,
    bookings_listing_endpoint,
    delete_booking_endpoint,
)
from controllers.property_controller import latest_properties_endpoint, properties_listing_endpoint, view_property_endpoint
from core.auth.session import SessionClient
from core.cloud.appwrite import CloudContext
from core.config.settings import ConfigurationError, get_settings
from core.dependencies.auth import get_appwrite_user, get_cloud, get_session_client
from core.models.models import Identity

# Import environment variables
from dotenv import load_dotenv
load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


# Lifespan (startup/shutdown)
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Checks the Appwrite configuration once before serving."""
    try:
        settings = get_settings()
        logger.info("Appwrite project %s at %s", settings.project_id, settings.endpoint)
    except ConfigurationError as e:
        # Routes answer 500 with the same list until the environment is fixed
        logger.critical("CRITICAL CONFIG ERROR: %s", e)
    yield


# Initialize FastAPI app
app = FastAPI(
    title="ReState API",
    description="Property search and booking over Appwrite for the ReState app",
    version="0.1.0",
    lifespan=lifespan,
)

origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True, # Allows Appwrite session cookies to be sent
    allow_methods=["*"],
    allow_headers=["*"],
)

# Root endpoint
@app.get("/")
async def root():
    return {"message": "Welcome to ReState API"}

# Latest Properties
@app.get("/properties/latest")
async def latest_properties(cloud: CloudContext = Depends(get_cloud)):
    return await latest_properties_endpoint(cloud)

# Search Properties
@app.get("/properties")
async def properties_listing(
        filter: str = Query("All", description="Property type to filter by; 'All' disables the filter."),
        query: str = Query("", description="Free text matched against name, address and type."),
        limit: Optional[int] = Query(None, ge=1, description="Maximum number of properties to return."),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await properties_listing_endpoint(cloud, filter, query, limit)

# View Property
@app.get("/properties/{property_id}")
async def view_property(property_id: str, cloud: CloudContext = Depends(get_cloud)):
    return await view_property_endpoint(cloud, property_id)

# OAuth2 Login URL
@app.get("/auth/login")
async def login_url(
        redirect_uri: str = Query(..., description="Where the provider sends the browser back with userId and secret."),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await login_url_endpoint(cloud, redirect_uri)

# OAuth2 Callback
@app.get("/auth/callback")
async def login_callback(
        request: Request,
        response: Response,
        cloud: CloudContext = Depends(get_cloud),
        sessions: SessionClient = Depends(get_session_client),
    ):
    return await login_callback_endpoint(cloud, sessions, str(request.url), response)

# Current User
@app.get("/auth/me")
async def current_user(user: Identity = Depends(get_appwrite_user)):
    return await current_user_endpoint(user)

# Logout
@app.post("/auth/logout")
async def logout(
        response: Response,
        cloud: CloudContext = Depends(get_cloud),
        sessions: SessionClient = Depends(get_session_client),
    ):
    return await logout_endpoint(cloud, sessions, response)

# My Bookings
@app.get("/bookings")
async def bookings_listing(
        user: Identity = Depends(get_appwrite_user),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await bookings_listing_endpoint(cloud, user)

# Book Property
@app.post("/bookings")
async def book_property(
        property_id: str = Form(...),
        allow_duplicate: bool = Form(False),
        user: Identity = Depends(get_appwrite_user),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await book_property_endpoint(cloud, user, property_id, allow_duplicate)

# Booking Status
@app.get("/bookings/status")
async def booking_status(
        property_id: str = Query(..., description="The property to check for an existing booking."),
        user: Identity = Depends(get_appwrite_user),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await booking_status_endpoint(cloud, user, property_id)

# Cancel Booking
@app.delete("/bookings/{booking_id}")
async def delete_booking(
        booking_id: str,
        user: Identity = Depends(get_appwrite_user),
        cloud: CloudContext = Depends(get_cloud),
    ):
    return await delete_booking_endpoint(cloud, user, booking_id)
