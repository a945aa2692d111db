"""
Central configuration constants for cellworld simulation.

Defines default values, thresholds, and configuration parameters
used across multiple modules.
"""

from pathlib import Path

# ============================================================================
# Spatial Indexing Configuration
# ============================================================================

# Bucket edge length in grid cells. Chosen relative to typical organism size.
BUCKET_SIZE = 20


# ============================================================================
# Grid Defaults
# ============================================================================

DEFAULT_COLS = 100
DEFAULT_ROWS = 100
DEFAULT_CELL_SIZE = 5


# ============================================================================
# Food Spawning
# ============================================================================

# Grid area that yields one food placement attempt per tick at food_drop_prob = 1
FOOD_SPAWN_AREA_DIVISOR = 50000


# ============================================================================
# Hyperparameter Defaults
# ============================================================================

MAX_ORGANISMS_DEFAULT = -1          # Negative = uncapped
FOOD_DROP_PROB_DEFAULT = 0.0
USE_GLOBAL_MUTABILITY_DEFAULT = False
GLOBAL_MUTABILITY_DEFAULT = 5.0
LIFESPAN_MULTIPLIER_DEFAULT = 100
FOOD_PROD_PROB_DEFAULT = 5.0        # Percent chance per producer cell per tick
ADD_PROB_DEFAULT = 33.0
CHANGE_PROB_DEFAULT = 33.0
REMOVE_PROB_DEFAULT = 33.0

# Statistics snapshot interval (ticks)
DATA_UPDATE_RATE_DEFAULT = 100

# Starting mutability for organisms created by origin of life
STARTING_MUTABILITY = 5.0


# ============================================================================
# Lineage Record
# ============================================================================

# Extinct species with a smaller lifetime population are discarded
FOSSIL_MIN_POPULATION = 10

# Maximum number of statistics rows kept by the fossil record
FOSSIL_RECORD_SIZE = 500

SPECIES_NAME_LENGTH = 10


# ============================================================================
# Schemas
# ============================================================================

SCHEMA_DIR = Path(__file__).parent / "schemas"

SNAPSHOT_FORMAT_VERSION = 1


# ============================================================================
# Debug / Performance Configuration
# ============================================================================

# Set SIM_DEBUG_INVARIANTS=1 to assert registry invariants after mutations
DEBUG_INVARIANTS_ENV = "SIM_DEBUG_INVARIANTS"

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100  # Number of ticks to average

