"""
Raster and vector covariate extraction at camera sites.

This module contains functions for:
- Reading raster values in the cell enclosing each site
- Averaging raster values within a circular buffer around each site
- Converting habitat classes to proportions of buffer area
- Measuring distance from each site to the nearest water feature
- Assembling all covariates onto the site table
"""

import numpy as np
import pandas as pd
import geopandas as gpd
from pyproj import CRS
from rasterio.features import geometry_mask
from rasterio.transform import Affine, rowcol

from camtrap.config import SITE_ID_COL, HABITAT_CLASSES, BUFFER_RADII, COVARIATE_BUFFER
from camtrap.raster import class_indicator
from camtrap.vector import match_crs


def _check_layer_and_points(layer, points):
    if points.crs is None:
        raise ValueError("Site points have no CRS")
    if CRS.from_user_input(points.crs) != CRS.from_user_input(layer.crs):
        raise ValueError(
            f"CRS mismatch: points are {CRS.from_user_input(points.crs).to_string()}, "
            f"layer '{layer.name}' is {CRS.from_user_input(layer.crs).to_string()}"
        )
    if layer.data.ndim != 2:
        raise ValueError(
            f"Layer '{layer.name}' has {layer.data.shape[0]} bands; reduce it to one band first"
        )


def extract_at_points(layer, points):
    """
    Read the value of the raster cell enclosing each point.

    Parameters
    ----------
    layer : RasterLayer
        Single-band raster in the same CRS as `points`.
    points : GeoDataFrame
        Point geometries.

    Returns
    -------
    numpy.ndarray
        Float array, one value per point. Points outside the raster or on a
        nodata cell get nan. Categorical codes are returned as floats.

    Raises
    ------
    ValueError
        If the CRS of the points and the layer differ, or the layer has
        more than one band.
    """
    _check_layer_and_points(layer, points)

    height, width = layer.data.shape
    rows, cols = rowcol(layer.transform, points.geometry.x.values, points.geometry.y.values)
    rows = np.asarray(rows)
    cols = np.asarray(cols)

    inside = (rows >= 0) & (rows < height) & (cols >= 0) & (cols < width)
    values = np.full(len(points), np.nan)
    values[inside] = layer.data[rows[inside], cols[inside]]

    if layer.categorical:
        values[values == layer.nodata] = np.nan
    return values


def _buffer_window(layer, geom):
    """Row/col slices of the raster cells overlapping a geometry's bounds."""
    height, width = layer.data.shape
    minx, miny, maxx, maxy = geom.bounds
    r0, c0 = (int(v) for v in rowcol(layer.transform, minx, maxy))
    r1, c1 = (int(v) for v in rowcol(layer.transform, maxx, miny))

    row_start, row_stop = max(min(r0, r1), 0), min(max(r0, r1) + 1, height)
    col_start, col_stop = max(min(c0, c1), 0), min(max(c0, c1) + 1, width)
    if row_start >= row_stop or col_start >= col_stop:
        return None
    return slice(row_start, row_stop), slice(col_start, col_stop)


def extract_buffer_mean(layer, points, radius):
    """
    Average raster values within a circular buffer around each point.

    Parameters
    ----------
    layer : RasterLayer
        Continuous single-band raster (use class_indicator() first for a
        categorical layer) in a projected CRS shared with `points`.
    points : GeoDataFrame
        Point geometries.
    radius : float
        Buffer radius in CRS units (meters).

    Returns
    -------
    numpy.ndarray
        Mean of the valid cells whose centres fall inside each buffer; nan
        where the buffer holds no valid cell.

    Notes
    -----
    A buffer smaller than a cell may contain no cell centre; in that case the
    enclosing cell value is used instead.
    """
    _check_layer_and_points(layer, points)
    if layer.categorical:
        raise ValueError(
            f"Layer '{layer.name}' is categorical; convert it with class_indicator() first"
        )
    if CRS.from_user_input(layer.crs).is_geographic:
        raise ValueError("Buffer extraction needs a projected CRS with metre units")
    if radius <= 0:
        raise ValueError(f"Buffer radius must be > 0, got {radius}")

    point_values = extract_at_points(layer, points)
    values = np.full(len(points), np.nan)

    for i, point in enumerate(points.geometry):
        circle = point.buffer(radius)
        window = _buffer_window(layer, circle)
        if window is None:
            continue

        rows, cols = window
        sub = layer.data[rows, cols]
        sub_transform = layer.transform @ Affine.translation(cols.start, rows.start)
        inside = geometry_mask([circle], out_shape=sub.shape, transform=sub_transform,
                               invert=True)

        if not inside.any():
            values[i] = point_values[i]
            continue

        cells = sub[inside]
        cells = cells[~np.isnan(cells)]
        if len(cells) > 0:
            values[i] = cells.mean()

    return values


def habitat_proportions(layer, points, classes=None, radii=None):
    """
    Proportion of each habitat class within buffers of several radii.

    Parameters
    ----------
    layer : RasterLayer
        Categorical habitat raster.
    points : GeoDataFrame
        Site points with a site_id column.
    classes : dict, optional
        Mapping of class code to short name. Default is config.HABITAT_CLASSES.
    radii : list of float, optional
        Buffer radii in meters. Default is config.BUFFER_RADII.

    Returns
    -------
    DataFrame
        site_id plus one column per class and radius, named
        hab_<class>_<radius>, holding values in [0, 1].
    """
    classes = classes or HABITAT_CLASSES
    radii = radii or BUFFER_RADII

    result = pd.DataFrame({SITE_ID_COL: points[SITE_ID_COL].values})
    for code, class_name in classes.items():
        indicator = class_indicator(layer, code, name=class_name)
        for radius in radii:
            result[f"hab_{class_name}_{radius:g}"] = extract_buffer_mean(indicator, points, radius)

    print(f"Extracted {len(classes)} habitat classes at radii {list(radii)}")
    return result


def distance_to_nearest(points, features, column='dist_water'):
    """
    Distance from each point to the nearest feature.

    Parameters
    ----------
    points : GeoDataFrame
        Site points in a projected CRS, with a site_id column.
    features : GeoDataFrame
        Target features (rivers, water points, ...). Reprojected to the CRS
        of `points` when needed.
    column : str, optional
        Name of the returned distance column.

    Returns
    -------
    Series
        Distances in CRS units, indexed like `points`.
    """
    if CRS.from_user_input(points.crs).is_geographic:
        raise ValueError("Distances need a projected CRS with metre units")

    features = match_crs(features, points)[['geometry']]
    joined = gpd.sjoin_nearest(points[[SITE_ID_COL, 'geometry']], features,
                               how='left', distance_col=column)
    # Equidistant features produce one row each; keep one per site
    joined = joined[~joined.index.duplicated(keep='first')]
    return joined[column].reindex(points.index).rename(column)


def extract_covariates(sites, habitat=None, continuous=None, water=None,
                       radii=None, buffer=COVARIATE_BUFFER, classes=None):
    """
    Add raster and vector covariates to the site table.

    Parameters
    ----------
    sites : GeoDataFrame
        Site points with a site_id column.
    habitat : RasterLayer, optional
        Categorical habitat raster for hab_<class>_<radius> proportions.
    continuous : dict, optional
        Mapping of output column name to continuous RasterLayer. Each is
        averaged within `buffer` meters of the site.
    water : GeoDataFrame, optional
        Water features for the dist_water column.
    radii : list of float, optional
        Habitat buffer radii. Default is config.BUFFER_RADII.
    buffer : float or None, optional
        Buffer radius for continuous layers. If None, the enclosing cell
        value is used.
    classes : dict, optional
        Habitat class codes and names. Default is config.HABITAT_CLASSES.

    Returns
    -------
    GeoDataFrame
        Copy of `sites` with the covariate columns added.
    """
    result = sites.copy()

    if habitat is not None:
        proportions = habitat_proportions(habitat, sites, classes=classes, radii=radii)
        result = result.merge(proportions, on=SITE_ID_COL, how='left')

    for column, layer in (continuous or {}).items():
        if buffer is None:
            result[column] = extract_at_points(layer, sites)
        else:
            result[column] = extract_buffer_mean(layer, sites, buffer)
        n_missing = int(np.isnan(result[column]).sum())
        print(f"Extracted {column} from '{layer.name}' ({n_missing} sites without data)")

    if water is not None:
        result['dist_water'] = distance_to_nearest(sites, water).values
        print(f"Computed distance to water (median {result['dist_water'].median():.0f} m)")

    return result
