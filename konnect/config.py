import os

# Data directory holding every JSON artifact of the pipeline
DATA_DIR = os.environ.get("KK_DATA_DIR", "data")

# Artifact filenames (relative to DATA_DIR)
OSM_LOCATIONS_FILE = "osm-locations.json"
DETAILED_FILE = "locations-detailed.json"
POINTS_FILE = "points.json"
COMBINED_FILE = "locations-combined.json"
SURNAME_CSV = os.path.join("census", "jewish_surnames.csv")
SURNAMES_FILE = "jewish-surnames.json"
POPULATION_FILE = "jewish-population.json"
SURNAME_HEATMAPS_FILE = "surname-heatmaps.json"
POPULATION_POINTS_FILE = "population-points.json"

# Overpass endpoints, tried in order
OVERPASS_URLS = [
    u.strip()
    for u in os.environ.get(
        "KK_OVERPASS_URLS",
        "https://overpass-api.de/api/interpreter,https://overpass.kumi.systems/api/interpreter",
    ).split(",")
    if u.strip()
]
OVERPASS_TIMEOUT_S = 180      # server-side [timeout:] for nationwide queries
HTTP_TIMEOUT_S = 300          # client-side read timeout
MAX_ATTEMPTS = int(os.environ.get("KK_MAX_ATTEMPTS", "3"))
BACKOFF_START_S = 1.5
BACKOFF_FACTOR = 1.8
BACKOFF_CAP_S = 20.0
RETRY_STATUS = (429, 502, 503, 504)

# Politeness delay between consecutive Overpass requests
REQUEST_DELAY_S = float(os.environ.get("KK_REQUEST_DELAY", "2.0"))
METRO_DELAY_S = 1.0

USER_AGENT = "KosherKonnect/data-pipeline (requests)"
DATA_LICENSE = "ODbL 1.0 - https://opendatacommons.org/licenses/odbl/"

# Dedup precision in decimal places of lat/lon
FETCH_DEDUP_PRECISION = 3    # ~100 m, used right after fetching
MERGE_DEDUP_PRECISION = 4    # ~10 m, used when merging / appending

# Heatmap grid size in degrees (roughly 20-30 miles)
GRID_SIZE = float(os.environ.get("KK_GRID_SIZE", "0.3"))
H3_RES = 6
LABEL_MAX_LEN = 30

# Population overlay: metros at or above this size saturate the heatmap
POPULATION_WEIGHT_SCALE = 100_000

# Regional splits for queries that time out nationwide
REGIONS = {
    "Northeast": (38.5, -82.0, 45.5, -66.9),
    "Southeast": (24.4, -92.0, 38.5, -75.0),
    "Midwest": (36.0, -104.0, 49.4, -80.0),
    "Southwest": (24.4, -125.0, 42.0, -102.0),
    "West": (42.0, -125.0, 49.4, -102.0),
}

# Metro areas with large Jewish populations (south, west, north, east)
METROS = {
    "NYC Area": (40.4, -74.3, 41.0, -73.5),
    "Long Island": (40.5, -73.8, 41.2, -71.8),
    "NJ North": (40.5, -74.5, 41.3, -74.0),
    "Los Angeles": (33.7, -118.7, 34.4, -117.8),
    "Miami": (25.5, -80.5, 26.5, -80.0),
    "Chicago": (41.6, -88.0, 42.2, -87.4),
    "Philadelphia": (39.8, -75.4, 40.2, -74.9),
    "Boston": (42.2, -71.3, 42.5, -70.9),
    "Baltimore": (39.2, -76.8, 39.5, -76.4),
    "DC Area": (38.8, -77.2, 39.1, -76.9),
    "Detroit": (42.2, -83.4, 42.6, -82.9),
    "Cleveland": (41.3, -81.8, 41.6, -81.4),
    "Atlanta": (33.6, -84.6, 34.0, -84.2),
    "Denver": (39.5, -105.1, 39.9, -104.7),
    "Phoenix": (33.3, -112.2, 33.7, -111.8),
    "San Francisco": (37.6, -122.6, 37.9, -122.2),
    "Seattle": (47.4, -122.5, 47.8, -122.1),
    "Dallas": (32.6, -97.0, 33.0, -96.5),
    "Houston": (29.5, -95.6, 30.0, -95.1),
}

# State centroids [lon, lat] used to place state-level overlay points
STATE_CENTROIDS = {
    "AL": (-86.9023, 32.3182), "AK": (-153.4937, 64.2008), "AZ": (-111.0937, 34.0489),
    "AR": (-92.3731, 35.2010), "CA": (-119.4179, 36.7783), "CO": (-105.3111, 39.1130),
    "CT": (-72.7554, 41.6032), "DE": (-75.5277, 38.9108), "DC": (-77.0369, 38.9072),
    "FL": (-81.5158, 27.6648), "GA": (-82.9001, 32.1656), "HI": (-155.5828, 19.8968),
    "ID": (-114.7420, 44.0682), "IL": (-89.3985, 40.6331), "IN": (-86.1349, 40.2672),
    "IA": (-93.0977, 41.8780), "KS": (-98.4842, 39.0119), "KY": (-84.2700, 37.8393),
    "LA": (-92.1450, 30.9843), "ME": (-69.4455, 45.2538), "MD": (-76.6413, 39.0458),
    "MA": (-71.3824, 42.4072), "MI": (-85.6024, 44.3148), "MN": (-94.6859, 46.7296),
    "MS": (-89.3985, 32.3547), "MO": (-91.8318, 37.9643), "MT": (-110.3626, 46.8797),
    "NE": (-99.9018, 41.4925), "NV": (-116.4194, 38.8026), "NH": (-71.5724, 43.1939),
    "NJ": (-74.4057, 40.0583), "NM": (-105.8701, 34.5199), "NY": (-75.4999, 43.0000),
    "NC": (-79.0193, 35.7596), "ND": (-101.0020, 47.5515), "OH": (-82.9071, 40.4173),
    "OK": (-97.0929, 35.0078), "OR": (-120.5542, 43.8041), "PA": (-77.1945, 41.2033),
    "RI": (-71.4774, 41.5801), "SC": (-81.1637, 33.8361), "SD": (-99.9018, 43.9695),
    "TN": (-86.5804, 35.5175), "TX": (-99.9018, 31.9686), "UT": (-111.0937, 39.3210),
    "VT": (-72.5778, 44.5588), "VA": (-78.6569, 37.4316), "WA": (-120.7401, 47.7511),
    "WV": (-80.4549, 38.5976), "WI": (-89.6165, 43.7844), "WY": (-107.2903, 43.0760),
}


def data_path(filename: str, data_dir: str = None) -> str:
    """Resolve an artifact filename against the data directory."""
    return os.path.join(data_dir or DATA_DIR, filename)
