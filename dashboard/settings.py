import configparser
import os
import logging

# Get base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_PATH = os.path.join(BASE_DIR, "config.ini")
LOG_PATH = os.path.join(BASE_DIR, "app.log")

def setup_logging():
    logging.basicConfig(
        filename=LOG_PATH,
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )

setup_logging()

logger = logging.getLogger(__name__)

# Load config
config = configparser.ConfigParser()
config.read(CONFIG_PATH)

logger.info("Loaded configuration from %s", CONFIG_PATH)
if not config.sections():
    logger.warning("No sections found in config.ini")
    raise RuntimeError("config.ini is missing or empty")

# Settings
MODE = config.get("settings", "mode", fallback="DEBUG")
MSSQL_USER = config.get("mssql", "user", fallback="")
MSSQL_PASSWORD = config.get("mssql", "password", fallback="")
MSSQL_HOST = config.get("mssql", "host", fallback="localhost")
MSSQL_PORT = config.get("mssql", "port", fallback="1433")
MSSQL_DB = config.get("mssql", "database", fallback="")
OPTIONS = dict(config.items("options")) if config.has_section("options") else {}

# URLs
SQLITE_DATABASE_URL = f"sqlite:///{os.path.join(BASE_DIR, 'dashboard.db')}"
MSSQL_DATABASE_URL = (
    f"mssql+pyodbc://{MSSQL_USER}:{MSSQL_PASSWORD}@{MSSQL_HOST}:{MSSQL_PORT}/{MSSQL_DB}"
    f"?driver={OPTIONS.get('driver', 'ODBC Driver 18 for SQL Server').replace(' ', '+')}"
)

# Feed sources
SOURCE_BACKEND = config.get("source", "backend", fallback="workbook")
WORKBOOK_PATH = os.path.join(
    BASE_DIR, config.get("source", "workbook_path", fallback="data/memberships.xlsx")
)
MEMBER_SHEET = config.get("source", "member_sheet", fallback="Expirations")
ANNOTATION_SHEET = config.get("source", "annotation_sheet", fallback="Member_Annotations")
ANNOTATION_BACKEND = config.get("annotations", "backend", fallback="source")

# Periodic refresh of the member feed (the dashboard polled every 5 minutes)
REFRESH_ENABLED = config.getboolean("refresh", "enabled", fallback=True)
REFRESH_INTERVAL_SECONDS = config.getint("refresh", "interval_seconds", fallback=300)

# Cache TTLs
CACHE_TTL_MEMBERS = REFRESH_INTERVAL_SECONDS
CACHE_TTL_FILTERS = 300


def get_database_url() -> str:
    """Resolve the database URL for the configured MODE."""
    if MODE.upper() == "DEBUG":
        return SQLITE_DATABASE_URL
    elif MODE.upper() == "PRODUCTION":
        return MSSQL_DATABASE_URL
    raise ValueError("Invalid MODE specified in config.")
