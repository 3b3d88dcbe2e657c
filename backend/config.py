import os
from dotenv import load_dotenv

load_dotenv()

GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
NEWS_API_KEY = os.getenv("NEWS_API_KEY", "")

# --- Collaborator endpoints ---
GOOGLE_MAPS_BASE_URL = os.getenv("GOOGLE_MAPS_BASE_URL", "https://maps.googleapis.com/maps/api")
CRIME_API_URL = os.getenv(
    "CRIME_API_URL",
    "https://maps2.dcgis.dc.gov/dcgis/rest/services/FEEDS/MPD/MapServer/8/query",
)
NEWS_API_URL = os.getenv("NEWS_API_URL", "https://newsapi.org/v2/everything")

# --- Auth ---
API_KEY = os.getenv("API_KEY", "")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:8080,http://localhost:3000").split(",")

# --- External calls ---
EXTERNAL_CALL_TIMEOUT_S = float(os.getenv("EXTERNAL_CALL_TIMEOUT_S", "10"))
MAPS_CONCURRENCY = int(os.getenv("MAPS_CONCURRENCY", "4"))
MAPS_RETRY_MAX = 3
CRIME_RESULT_LIMIT = 1000

# --- Route generation ---
METERS_PER_MILE = 1609.34
FEET_PER_METER = 3.28084
DEFAULT_DISTANCE_TOLERANCE = 0.3
DEFAULT_SIMILARITY_THRESHOLD = 0.3
MAX_ROUTES_PER_REQUEST = 5
MAX_ASSEMBLY_ATTEMPTS = 8      # directions requests per candidate search
MAX_SLOT_ATTEMPTS = 4          # candidate searches per requested route
CIRCUMFERENCE_FACTOR = 0.8     # real paths run longer than the ideal circle
RADIUS_GROWTH_PER_ATTEMPT = 0.1
WAYPOINT_JITTER = 0.1          # +/- 5% of radius
WAYPOINT_ANGLE_VARIATIONS = [0.0, 15.0, -15.0, 30.0, -30.0]  # degrees

# --- Walkability probing ---
WALKABLE_PLACE_TYPES = {"street_address", "route", "neighborhood", "park", "point_of_interest"}
PROBE_RADII_M = [100, 200, 300, 400, 500]
PROBE_ANGLE_COUNT = 8
JITTER_FALLBACK_DEG = 0.001    # ~100 m box

# --- Diversity ---
SIMILARITY_SAMPLE_SIZE = 10
SIMILARITY_RADIUS_M = 100.0

# --- Crime risk ---
CRIME_WINDOW_DAYS = 7
CRIME_SEARCH_RADIUS_KM = 0.5
KM_PER_DEGREE = 111.0
RECENT_INCIDENT_LIMIT = 5

SEVERITY_WEIGHTS: dict[str, int] = {"low": 1, "medium": 2, "high": 3}

# Matched against lowercased "offense method" text, high checked first
HIGH_SEVERITY_KEYWORDS = [
    "homicide", "assault", "robbery", "carjacking", "weapon",
    "sex abuse", "sex-abuse", "gun", "knife",
]
MEDIUM_SEVERITY_KEYWORDS = ["burglary", "theft", "stolen", "arson"]

# --- News risk ---
NEWS_WINDOW_DAYS = 14
NEWS_RECENCY_HORIZON_DAYS = 14.0
NEWS_ADJUSTMENT_SCALE = 1.5
RECENT_NEWS_EVENT_LIMIT = 3
KNOWN_LOCATION_RADIUS_KM = 10.0

NEWS_KEYWORD_WEIGHTS: dict[str, float] = {
    "murder": 1.0,
    "homicide": 1.0,
    "shooting": 0.9,
    "stabbing": 0.9,
    "assault": 0.8,
    "carjacking": 0.8,
    "robbery": 0.8,
    "attack": 0.7,
    "violence": 0.7,
    "riot": 0.7,
    "burglary": 0.6,
    "theft": 0.5,
    "crime": 0.5,
    "danger": 0.5,
    "unsafe": 0.5,
    "emergency": 0.4,
    "suspicious": 0.4,
    "protest": 0.3,
    "demonstration": 0.3,
    "police": 0.3,
    "incident": 0.3,
    "warning": 0.3,
    "alert": 0.3,
    "investigation": 0.2,
}

KNOWN_LOCATIONS: dict[str, tuple[float, float]] = {
    "Washington DC": (38.9072, -77.0369),
    "New York City": (40.7128, -74.0060),
    "Los Angeles": (34.0522, -118.2437),
    "Chicago": (41.8781, -87.6298),
    "Houston": (29.7604, -95.3698),
    "Philadelphia": (39.9526, -75.1652),
    "Phoenix": (33.4484, -112.0740),
}

# --- Safety score ---
CRIME_ONLY_CONFIDENCE = 0.6
DEGRADED_CRIME_CONFIDENCE = 0.3
HIGH_CONFIDENCE = 0.7
MODERATE_CONFIDENCE = 0.4

# --- Route metadata ---
HILL_ELEVATION_FT = 100.0
CHALLENGING_DISTANCE_MI = 5.0
CHALLENGING_ELEVATION_FT = 200.0
MODERATE_DISTANCE_MI = 3.0
MODERATE_ELEVATION_FT = 100.0
ELEVATION_SAMPLE_SIZE = 50
TRAIL_KEYWORDS = ["trail", "path", "park", "greenway", "towpath"]
