"""
End-to-end assembly of the per-site covariate table.

Runs the data stages of the walkthrough in order (sites, boundaries,
detections, rasters, extraction) so later scripts can start from a complete
table without re-running earlier scripts by hand.
"""

import pandas as pd

from camtrap import config
from camtrap.vector import load_sites, load_boundaries, assign_conservancy
from camtrap.detections import (
    summarise_effort, active_detections, summarise_detections, summarise_livestock,
    join_site_tables, detection_proportions, check_site_integrity
)
from camtrap.raster import (
    load_raster, reproject_raster, aggregate_raster,
    population_density, log_transform, band_mean
)
from camtrap.extraction import extract_covariates


def require_inputs(paths):
    """
    Raise FileNotFoundError listing any missing input file.

    Parameters
    ----------
    paths : list of Path
        Files the calling step reads.
    """
    missing = [str(p) for p in paths if not p.exists()]
    if missing:
        raise FileNotFoundError(
            "Input files not found:\n  " + "\n  ".join(missing) +
            f"\nPlace the walkthrough data in {config.DATA_RAW}/ first."
        )


def read_table(path):
    """Read a CSV input table, keeping site identifiers as strings."""
    return pd.read_csv(path, dtype={config.SITE_ID_COL: str})


def site_detection_table(species=config.SPECIES):
    """
    Stages 1-3: projected sites with conservancy groups and detection summaries.

    Parameters
    ----------
    species : str, optional
        Focal species tag. Default is config.SPECIES.

    Returns
    -------
    GeoDataFrame
        Sampled sites with effort, detection counts and proportions.
    """
    require_inputs([config.SITES_FILE, config.EFFORT_FILE, config.DETECTIONS_FILE,
                    config.CONSERVANCIES_FILE])

    sites = load_sites(config.SITES_FILE, crs=config.PROCESSING_CRS)
    conservancies = load_boundaries(config.CONSERVANCIES_FILE, crs=config.PROCESSING_CRS)
    sites = assign_conservancy(sites, conservancies)

    effort = read_table(config.EFFORT_FILE)
    detections = active_detections(read_table(config.DETECTIONS_FILE), effort)

    table = join_site_tables(
        sites,
        summarise_effort(effort),
        summarise_detections(detections, species),
        summarise_livestock(detections, config.LIVESTOCK_SPECIES),
    )
    table = detection_proportions(table)
    check_site_integrity(table)
    return table


def prepare_layers():
    """
    Stage 4: load rasters and derive the layers used as covariates.

    Returns
    -------
    dict
        'habitat' (categorical, processing CRS), 'pop_density' and
        'log_pop_density' (people per km2 and its log10(x + 1)), 'climate_mean'
        (mean across bands).
    """
    require_inputs([config.HABITAT_FILE, config.POPULATION_FILE, config.CLIMATE_FILE])

    habitat = load_raster(config.HABITAT_FILE, categorical=True, name='habitat')
    habitat = reproject_raster(habitat, config.PROCESSING_CRS,
                               resolution=config.TARGET_RESOLUTION)

    # Counts are converted to a density on the source grid, before warping
    population = load_raster(config.POPULATION_FILE, band=1, name='population')
    density = population_density(population)
    density = reproject_raster(density, config.PROCESSING_CRS,
                               resolution=config.TARGET_RESOLUTION)
    density = aggregate_raster(density, config.POPULATION_AGGREGATION, method='mean')

    climate = load_raster(config.CLIMATE_FILE, name='climate')
    climate = band_mean(reproject_raster(climate, config.PROCESSING_CRS,
                                         resolution=config.TARGET_RESOLUTION))

    return {
        'habitat': habitat,
        'pop_density': density,
        'log_pop_density': log_transform(density, name='log_pop_density'),
        'climate_mean': climate,
    }


def build_site_table(species=config.SPECIES, layers=None):
    """
    Stages 1-5: the flat per-site covariate table used for model fitting.

    Parameters
    ----------
    species : str, optional
        Focal species tag. Default is config.SPECIES.
    layers : dict, optional
        Output of prepare_layers(), if already computed.

    Returns
    -------
    GeoDataFrame
        One row per sampled site with detection counts, proportions,
        habitat proportions, distance to water, population density and
        climate covariates.
    """
    table = site_detection_table(species)
    if layers is None:
        layers = prepare_layers()

    require_inputs([config.WATER_FILE])
    water = load_boundaries(config.WATER_FILE, crs=config.PROCESSING_CRS, name_col=None)

    continuous = {name: layers[name] for name in ['pop_density', 'log_pop_density', 'climate_mean']}
    table = extract_covariates(
        table,
        habitat=layers['habitat'],
        continuous=continuous,
        water=water,
        radii=config.BUFFER_RADII,
        buffer=config.COVARIATE_BUFFER,
    )
    print(f"Site covariate table: {len(table)} sites, {len(table.columns)} columns")
    return table
