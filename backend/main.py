"""FastAPI application for safe running-route generation and scoring."""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

import httpx
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from errors import ExternalServiceError, InvalidRequest, RouteGenerationFailed
from generator import generate_routes
from geo import GeoPoint
from models import RouteRequest, RoutesResponse, SafetyScoreDetails, ScoreRequest
from safety import score_route
from services import Services, build_services

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with httpx.AsyncClient() as client:
        app.state.services = build_services(client)
        logger.info("Collaborator clients initialized")
        yield


app = FastAPI(title="Safe Route Generator", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_services(request: Request) -> Services:
    return request.app.state.services


# ---------- API key for quota-consuming endpoints ----------

async def verify_api_key(x_api_key: str = Header(default="")):
    """No key configured = allow (local dev)."""
    if not config.API_KEY:
        return
    if x_api_key != config.API_KEY:
        raise HTTPException(403, "Invalid or missing API key")


# ---------- Error mapping ----------

@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RouteGenerationFailed)
async def generation_failed_handler(request: Request, exc: RouteGenerationFailed):
    return JSONResponse(
        status_code=502 if exc.service_failure else 422,
        content={"detail": str(exc), "slots": [asdict(s) for s in exc.slots]},
    )


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    return JSONResponse(status_code=502, content={"detail": str(exc), "service": exc.service})


# ---------- Health check ----------

@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------- Routes ----------

@app.post("/routes/generate", response_model=RoutesResponse, dependencies=[Depends(verify_api_key)])
async def generate_routes_endpoint(body: RouteRequest, services: Services = Depends(get_services)):
    routes = await generate_routes(body, services)
    return RoutesResponse(count=len(routes), routes=routes)


@app.post("/routes/score", response_model=SafetyScoreDetails, dependencies=[Depends(verify_api_key)])
async def score_route_endpoint(body: ScoreRequest, services: Services = Depends(get_services)):
    points = [GeoPoint(p.lat, p.lon) for p in body.points]
    return await score_route(points, services, body.crime_window_days, body.news_window_days)


# ---------- Config (read-only) ----------

@app.get("/config")
async def get_config():
    return {
        "distance_tolerance": config.DEFAULT_DISTANCE_TOLERANCE,
        "similarity_threshold": config.DEFAULT_SIMILARITY_THRESHOLD,
        "max_routes_per_request": config.MAX_ROUTES_PER_REQUEST,
        "max_assembly_attempts": config.MAX_ASSEMBLY_ATTEMPTS,
        "crime_window_days": config.CRIME_WINDOW_DAYS,
        "crime_search_radius_km": config.CRIME_SEARCH_RADIUS_KM,
        "news_window_days": config.NEWS_WINDOW_DAYS,
        "external_call_timeout_s": config.EXTERNAL_CALL_TIMEOUT_S,
        "topologies": ["loop", "out-and-back", "point-to-point"],
    }
