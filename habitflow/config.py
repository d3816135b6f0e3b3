import logging
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name, default, minimum=0):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%d below %d, using %d", name, value, minimum, default)
        return default
    return value


# Defaults if env vars not set
MAX_FREEZES = _int_env("HABITFLOW_MAX_FREEZES", 2)
DAYS_PER_FREEZE = _int_env("HABITFLOW_DAYS_PER_FREEZE", 7, minimum=1)
LOG_LEVEL = os.getenv("HABITFLOW_LOG_LEVEL", "WARNING").upper()


def configure_logging(level=None):
    """Attach a basic handler for applications embedding the engine."""
    level = level or LOG_LEVEL
    if not isinstance(level, int) and level not in logging.getLevelNamesMapping():
        level = "WARNING"
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
