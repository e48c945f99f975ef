"""
Configuration file for the camera-trap occupancy walkthrough.

This module centralizes all configurable parameters including:
- Focal species and livestock species
- Habitat class codes and buffer radii
- Raster preparation settings
- Model covariate sets
- File paths and coordinate reference systems

To run the workflow for a different species, edit SPECIES below and re-run
scripts 02-05.
"""

from pathlib import Path

# =====================================================================
# Project Paths
# =====================================================================

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
DATA_RAW = DATA_DIR / "raw"
DATA_PROCESSED = DATA_DIR / "processed"

# Results directories
RESULTS_DIR = PROJECT_ROOT / "results"
RESULTS_FIGURES = RESULTS_DIR / "figures"
RESULTS_MODELS = RESULTS_DIR / "models"

# Input files
SITES_FILE = DATA_RAW / "sites.csv"
EFFORT_FILE = DATA_RAW / "effort.csv"
DETECTIONS_FILE = DATA_RAW / "detections.csv"
CONSERVANCIES_FILE = DATA_RAW / "conservancies.shp"
STUDY_AREA_FILE = DATA_RAW / "study_area.shp"
WATER_FILE = DATA_RAW / "water.shp"
HABITAT_FILE = DATA_RAW / "habitat.tif"
POPULATION_FILE = DATA_RAW / "population.tif"
CLIMATE_FILE = DATA_RAW / "climate.tif"

# Assembled per-site covariate table (written by script 04)
SITE_COVARIATES_FILE = DATA_PROCESSED / "site_covariates.csv"

# =====================================================================
# Species Selection - EDIT THIS TO CHANGE THE FOCAL SPECIES
# =====================================================================

SPECIES = 'impala'

# Species tags counted as livestock when computing livestock pressure
LIVESTOCK_SPECIES = ['cattle', 'shoat', 'donkey']

# =====================================================================
# Table Columns
# =====================================================================

SITE_ID_COL = 'site_id'
LON_COL = 'longitude'
LAT_COL = 'latitude'
GROUP_COL = 'conservancy'

# Name column in the conservancy polygons
BOUNDARY_NAME_COL = 'name'

# Group assigned to sites that fall outside every conservancy polygon
OUTSIDE_GROUP = 'outside'

# =====================================================================
# Coordinate Reference Systems
# =====================================================================

# Processing CRS (projected, metres) - UTM zone 36S
PROCESSING_CRS = 'EPSG:32736'

# Storage CRS of the site table (geographic coordinates)
STORAGE_CRS = 'EPSG:4326'

# =====================================================================
# Habitat Classes
# =====================================================================

# Integer codes in the habitat raster and their short names
HABITAT_CLASSES = {
    1: 'forest',
    2: 'shrubland',
    3: 'grassland',
    4: 'cropland',
    5: 'bare',
    6: 'water',
}

# Value stored in categorical rasters where there is no data
CATEGORICAL_NODATA = 0

# Buffer radii (meters) for habitat proportions
BUFFER_RADII = [250, 500, 1000]

# =====================================================================
# Raster Preparation Parameters
# =====================================================================

# Target resolution (meters) for rasters reprojected into PROCESSING_CRS
TARGET_RESOLUTION = 100

# Aggregation factor applied to the population density after reprojection
POPULATION_AGGREGATION = 10

# Buffer radius (meters) for population density and climate means
COVARIATE_BUFFER = 1000

# =====================================================================
# Model Parameters
# =====================================================================

# Covariate sets compared in script 05 (keys are model names)
MODEL_SETS = {
    'null': [],
    'habitat': ['hab_grassland_500', 'hab_shrubland_500'],
    'water': ['dist_water'],
    'people': ['log_pop_density', 'livestock_prop'],
    'full': ['hab_grassland_500', 'hab_shrubland_500', 'dist_water',
             'log_pop_density', 'livestock_prop'],
}

# Add the conservancy group as a categorical covariate to the full model
INCLUDE_GROUP = True

# Maximum IRLS iterations passed to statsmodels
GLM_MAXITER = 100

# =====================================================================
# Figure Settings
# =====================================================================

FIGURE_DPI = 300

# =====================================================================
# Validation
# =====================================================================

def validate_config():
    """Validate configuration settings."""
    if not SPECIES:
        raise ValueError("SPECIES must be a non-empty species tag")

    if SPECIES in LIVESTOCK_SPECIES:
        raise ValueError(f"SPECIES ({SPECIES}) must not be one of LIVESTOCK_SPECIES")

    if CATEGORICAL_NODATA in HABITAT_CLASSES:
        raise ValueError(
            f"CATEGORICAL_NODATA ({CATEGORICAL_NODATA}) clashes with a habitat class code"
        )

    if any(r <= 0 for r in BUFFER_RADII) or COVARIATE_BUFFER <= 0:
        raise ValueError("Buffer radii must be > 0")

    if TARGET_RESOLUTION <= 0:
        raise ValueError("TARGET_RESOLUTION must be > 0")

    if POPULATION_AGGREGATION < 1:
        raise ValueError("POPULATION_AGGREGATION must be >= 1")

    if 'null' not in MODEL_SETS:
        raise ValueError("MODEL_SETS must include a 'null' (intercept-only) model")

# Run validation on import
validate_config()
