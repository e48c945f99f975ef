"""
Synthetic inputs for the test suite.

Builds small rasters, site tables and boundary files around a study area
near 35.0E, 1.5S so tests run without the walkthrough data.
"""
import os
from typing import Optional

import numpy as np
import pandas as pd
import geopandas as gpd
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, from_origin
from shapely.geometry import LineString, box

from camtrap.raster import RasterLayer

UTM_CRS = 'EPSG:32736'
UTM_TRANSFORM = Affine(100.0, 0.0, 500000.0, 0.0, -100.0, 9850000.0)


def cell_centre(row: int, col: int, transform: Affine = UTM_TRANSFORM):
    """Projected x, y of the centre of a cell."""
    return transform * (col + 0.5, row + 0.5)


def utm_layer(data: np.ndarray, categorical: bool = False, name: str = 'test') -> RasterLayer:
    """In-memory layer on a 100 m grid in UTM zone 36S."""
    if categorical:
        return RasterLayer(data.astype('int32'), UTM_TRANSFORM, CRS.from_user_input(UTM_CRS),
                           0, name, True)
    return RasterLayer(data.astype('float64'), UTM_TRANSFORM, CRS.from_user_input(UTM_CRS),
                       np.nan, name, False)


def geographic_layer(data: np.ndarray, west: float, north: float, size: float,
                     name: str = 'population') -> RasterLayer:
    """In-memory continuous layer on a WGS84 grid of `size` degree cells."""
    return RasterLayer(data.astype('float64'), from_origin(west, north, size, size),
                       CRS.from_user_input('EPSG:4326'), np.nan, name, False)


def utm_points(xy, site_ids=None) -> gpd.GeoDataFrame:
    """Site points from projected coordinates."""
    xs, ys = zip(*xy)
    site_ids = site_ids or [f"S{i:02d}" for i in range(1, len(xy) + 1)]
    return gpd.GeoDataFrame({'site_id': site_ids},
                            geometry=gpd.points_from_xy(xs, ys), crs=UTM_CRS)


def write_raster(path: str, data: np.ndarray, transform: Affine, crs: str = UTM_CRS,
                 nodata: Optional[float] = -9999.0) -> str:
    """Write a 2-D or 3-D array as a GeoTIFF."""
    if data.ndim == 2:
        data = data[np.newaxis, ...]
    with rasterio.open(
        path, 'w', driver='GTiff',
        height=data.shape[1], width=data.shape[2], count=data.shape[0],
        dtype=data.dtype, crs=crs, transform=transform, nodata=nodata
    ) as dst:
        dst.write(data)
    return path


def write_study_data(root: str, seed: int = 42) -> dict:
    """
    Write a complete set of walkthrough inputs into `root`.

    Returns a dict of paths keyed like the config constants. Site S12 has no
    active days and site S11 has no detections of any species.
    """
    rng = np.random.default_rng(seed)
    paths = {}

    # Sites: 12 cameras either side of the 35.0E meridian
    lons = np.tile([34.96, 34.98, 35.02, 35.04], 3)
    lats = np.repeat([-1.52, -1.50, -1.48], 4)
    sites = pd.DataFrame({
        'site_id': [f"S{i:02d}" for i in range(1, 13)],
        'longitude': lons,
        'latitude': lats,
    })
    paths['SITES_FILE'] = os.path.join(root, 'sites.csv')
    sites.to_csv(paths['SITES_FILE'], index=False)

    # Effort: 30 days per site, S12 never active
    dates = pd.date_range('2024-01-01', periods=30).strftime('%Y-%m-%d')
    effort = pd.DataFrame([
        {'site_id': sid, 'date': d, 'active': 0 if sid == 'S12' else 1}
        for sid in sites['site_id'] for d in dates
    ])
    paths['EFFORT_FILE'] = os.path.join(root, 'effort.csv')
    effort.to_csv(paths['EFFORT_FILE'], index=False)

    # Detections: impala and cattle events on random days, none at S11/S12
    rows = []
    for sid in sites['site_id'][:10]:
        for species, n_days in [('impala', rng.integers(1, 15)), ('cattle', rng.integers(0, 8))]:
            for d in rng.choice(dates, size=n_days, replace=False):
                rows.append({'site_id': sid, 'date': d, 'species': species,
                             'n_images': int(rng.integers(1, 10))})
    paths['DETECTIONS_FILE'] = os.path.join(root, 'detections.csv')
    pd.DataFrame(rows).to_csv(paths['DETECTIONS_FILE'], index=False)

    # Boundaries in WGS84
    conservancies = gpd.GeoDataFrame(
        {'name': ['West', 'East']},
        geometry=[box(34.9, -1.6, 35.0, -1.4), box(35.0, -1.6, 35.1, -1.4)],
        crs='EPSG:4326'
    )
    paths['CONSERVANCIES_FILE'] = os.path.join(root, 'conservancies.gpkg')
    conservancies.to_file(paths['CONSERVANCIES_FILE'], driver='GPKG')

    study_area = gpd.GeoDataFrame(geometry=[box(34.9, -1.6, 35.1, -1.4)], crs='EPSG:4326')
    paths['STUDY_AREA_FILE'] = os.path.join(root, 'study_area.gpkg')
    study_area.to_file(paths['STUDY_AREA_FILE'], driver='GPKG')

    water = gpd.GeoDataFrame(geometry=[LineString([(35.0, -1.6), (35.0, -1.4)])],
                             crs='EPSG:4326')
    paths['WATER_FILE'] = os.path.join(root, 'water.gpkg')
    water.to_file(paths['WATER_FILE'], driver='GPKG')

    # Rasters in WGS84 covering 34.9-35.1E, 1.4-1.6S
    fine = from_origin(34.9, -1.4, 0.001, 0.001)
    habitat = rng.integers(1, 4, size=(200, 200)).astype('uint8')
    paths['HABITAT_FILE'] = write_raster(os.path.join(root, 'habitat.tif'), habitat, fine,
                                         crs='EPSG:4326', nodata=0)

    population = rng.gamma(2.0, 3.0, size=(200, 200)).astype('float32')
    paths['POPULATION_FILE'] = write_raster(os.path.join(root, 'population.tif'), population,
                                            fine, crs='EPSG:4326')

    coarse = from_origin(34.9, -1.4, 0.01, 0.01)
    climate = (20 + rng.normal(0, 2, size=(3, 20, 20))).astype('float32')
    paths['CLIMATE_FILE'] = write_raster(os.path.join(root, 'climate.tif'), climate, coarse,
                                         crs='EPSG:4326')
    return paths
