"""
Raster loading and preparation functions.

This module contains functions for:
- Loading single- and multi-band rasters into memory
- Reprojecting and aggregating rasters onto the processing grid
- Deriving per-cell layers (population density, log density, band means)
- Converting categorical classes to 0/1 indicator layers
"""

from collections import namedtuple
from pathlib import Path

import numpy as np
import rasterio
from pyproj import CRS as PyprojCRS
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.transform import Affine, array_bounds
from rasterio.warp import calculate_default_transform, reproject
from scipy import stats

from camtrap.config import CATEGORICAL_NODATA


# data: 2-D (rows, cols) or 3-D (bands, rows, cols) array. Continuous layers
# are float64 with nan as nodata; categorical layers are int32 codes with
# nodata set to config.CATEGORICAL_NODATA.
RasterLayer = namedtuple(
    'RasterLayer', ['data', 'transform', 'crs', 'nodata', 'name', 'categorical']
)


def load_raster(path, band=None, categorical=False, name=None):
    """
    Load a raster file into a RasterLayer.

    Parameters
    ----------
    path : str or Path
        Path to a raster readable by rasterio (GeoTIFF, ASCII grid, ...).
    band : int, optional
        1-based band to read. If None, all bands are read; single-band files
        come back as a 2-D array.
    categorical : bool, optional
        Keep integer class codes instead of converting to float. Default False.
    name : str, optional
        Layer name. Defaults to the file stem.

    Returns
    -------
    RasterLayer
        In-memory raster with nodata normalised (nan for continuous layers,
        config.CATEGORICAL_NODATA for categorical ones).

    Raises
    ------
    ValueError
        If the raster has no CRS.
    """
    with rasterio.open(path) as src:
        if src.crs is None:
            raise ValueError(f"Raster {path} has no CRS")

        indexes = band if band is not None else (1 if src.count == 1 else None)
        masked = src.read(indexes, masked=True)

        if categorical:
            data = masked.filled(CATEGORICAL_NODATA).astype('int32')
            nodata = CATEGORICAL_NODATA
        else:
            data = masked.astype('float64').filled(np.nan)
            nodata = np.nan

        layer = RasterLayer(
            data=data,
            transform=src.transform,
            crs=src.crs,
            nodata=nodata,
            name=name or Path(path).stem,
            categorical=categorical,
        )

    print(f"Loaded raster '{layer.name}' with shape {layer.data.shape}, "
          f"resolution {layer.transform.a:g} x {abs(layer.transform.e):g}")
    return layer


def valid_mask(layer):
    """Boolean array, True where the layer holds data."""
    if layer.categorical:
        return layer.data != layer.nodata
    return ~np.isnan(layer.data)


def reproject_raster(layer, dst_crs, resolution=None, resampling=None):
    """
    Reproject a raster to another CRS.

    Parameters
    ----------
    layer : RasterLayer
        Source raster.
    dst_crs : str or CRS
        Target coordinate reference system.
    resolution : float, optional
        Target cell size in target CRS units. If None, rasterio picks a
        resolution that preserves the source cell count.
    resampling : str, optional
        Name of a rasterio Resampling method ('nearest', 'bilinear', 'sum',
        ...). Default is 'nearest' for categorical layers and 'bilinear'
        for continuous ones.

    Returns
    -------
    RasterLayer
        Reprojected raster on a north-up grid.
    """
    if resampling is None:
        resampling = 'nearest' if layer.categorical else 'bilinear'
    method = Resampling[resampling]

    dst_crs = CRS.from_user_input(dst_crs)
    height, width = layer.data.shape[-2:]
    left, bottom, right, top = array_bounds(height, width, layer.transform)

    dst_transform, dst_width, dst_height = calculate_default_transform(
        layer.crs, dst_crs, width, height, left, bottom, right, top,
        resolution=resolution
    )

    dst_shape = layer.data.shape[:-2] + (dst_height, dst_width)
    destination = np.full(dst_shape, layer.nodata, dtype=layer.data.dtype)

    reproject(
        source=layer.data,
        destination=destination,
        src_transform=layer.transform,
        src_crs=layer.crs,
        src_nodata=layer.nodata,
        dst_transform=dst_transform,
        dst_crs=dst_crs,
        dst_nodata=layer.nodata,
        resampling=method,
    )

    print(f"Reprojected '{layer.name}' to {dst_crs.to_string()} "
          f"({resampling}): {layer.data.shape} -> {destination.shape}")
    return layer._replace(data=destination, transform=dst_transform, crs=dst_crs)


def _block_mode(values, nodata):
    values = values[values != nodata]
    if len(values) == 0:
        return nodata
    return stats.mode(values, keepdims=False).mode


def aggregate_raster(layer, factor, method=None):
    """
    Aggregate a raster into coarser cells by an integer factor.

    Parameters
    ----------
    layer : RasterLayer
        Source raster (2-D or 3-D).
    factor : int
        Number of source cells along each side of an output cell.
    method : str, optional
        'mean', 'sum' or 'mode'. Default is 'mode' for categorical layers
        and 'mean' for continuous ones.

    Returns
    -------
    RasterLayer
        Aggregated raster. Rows and columns that do not fill a whole block at
        the bottom/right edge are dropped.

    Notes
    -----
    Nodata cells are ignored within a block; a block with no valid cell is
    nodata. Ties in 'mode' go to the smallest class code.
    """
    if factor < 1:
        raise ValueError(f"Aggregation factor must be >= 1, got {factor}")
    if method is None:
        method = 'mode' if layer.categorical else 'mean'
    if method not in ['mean', 'sum', 'mode']:
        raise ValueError(f"Unknown aggregation method: {method}")
    if method != 'mode' and layer.categorical:
        raise ValueError("Categorical layers can only be aggregated with 'mode'")
    if factor == 1:
        return layer

    height, width = layer.data.shape[-2:]
    nh, nw = height // factor, width // factor
    if nh == 0 or nw == 0:
        raise ValueError(f"Aggregation factor {factor} is larger than raster {layer.data.shape}")

    cropped = layer.data[..., :nh * factor, :nw * factor]
    blocks = cropped.reshape(cropped.shape[:-2] + (nh, factor, nw, factor))
    blocks = np.moveaxis(blocks, -3, -2)
    blocks = blocks.reshape(blocks.shape[:-2] + (factor * factor,))

    if method == 'mode':
        data = np.apply_along_axis(_block_mode, -1, blocks, layer.nodata).astype(layer.data.dtype)
    else:
        valid = ~np.isnan(blocks)
        count = valid.sum(axis=-1)
        total = np.where(valid, blocks, 0.0).sum(axis=-1)
        if method == 'mean':
            data = np.where(count > 0, total / np.maximum(count, 1), np.nan)
        else:
            data = np.where(count > 0, total, np.nan)

    transform = layer.transform @ Affine.scale(factor)
    print(f"Aggregated '{layer.name}' by factor {factor} ({method}): "
          f"{layer.data.shape} -> {data.shape}")
    return layer._replace(data=data, transform=transform)


def cell_area_km2(layer):
    """
    Area of the raster cells in square kilometres.

    Parameters
    ----------
    layer : RasterLayer
        Raster on a north-up grid.

    Returns
    -------
    float or numpy.ndarray
        A single area for a projected CRS. For a geographic CRS, where cell
        area shrinks with latitude, a (rows, 1) column of geodesic areas on
        the CRS ellipsoid that broadcasts against the layer data.
    """
    if not layer.crs.is_geographic:
        return abs(layer.transform.a * layer.transform.e) / 1_000_000

    geod = PyprojCRS.from_user_input(layer.crs).get_geod()
    height = layer.data.shape[-2]
    west = layer.transform.c
    east = west + layer.transform.a
    edges = layer.transform.f + layer.transform.e * np.arange(height + 1)

    areas = np.empty((height, 1))
    for row in range(height):
        north, south = edges[row], edges[row + 1]
        area, _ = geod.polygon_area_perimeter(
            [west, east, east, west], [north, north, south, south]
        )
        areas[row, 0] = abs(area) / 1_000_000
    return areas


def population_density(layer, name='pop_density'):
    """
    Convert population counts per cell to people per square kilometre.

    Run this on the source grid, before any reprojection: counts are only
    meaningful for the cells they were tallied in, whereas a density can be
    resampled like any other continuous surface.

    Parameters
    ----------
    layer : RasterLayer
        Population counts in a projected or geographic CRS.
    name : str, optional
        Name of the derived layer.

    Returns
    -------
    RasterLayer
    """
    return layer._replace(data=layer.data / cell_area_km2(layer), name=name)


def log_transform(layer, name=None):
    """
    Apply log10(x + 1) to every cell of a continuous layer.

    Raises
    ------
    ValueError
        If any valid cell is negative.
    """
    if layer.categorical:
        raise ValueError("Cannot log-transform a categorical layer")
    if np.nanmin(layer.data) < 0:
        raise ValueError(f"Layer '{layer.name}' has negative values")
    return layer._replace(data=np.log10(layer.data + 1), name=name or f"log_{layer.name}")


def band_mean(layer, name=None):
    """
    Average a multi-band layer across bands, cell by cell.

    Cells with no valid band are nodata. A single-band layer is returned
    unchanged apart from its name.
    """
    if layer.data.ndim == 2:
        return layer._replace(name=name or layer.name)

    valid = ~np.isnan(layer.data)
    count = valid.sum(axis=0)
    total = np.where(valid, layer.data, 0.0).sum(axis=0)
    data = np.where(count > 0, total / np.maximum(count, 1), np.nan)
    return layer._replace(data=data, name=name or f"{layer.name}_mean")


def class_indicator(layer, value, name=None):
    """
    Convert one class of a categorical layer to a 0/1 indicator.

    Parameters
    ----------
    layer : RasterLayer
        Categorical raster.
    value : int
        Class code to flag.
    name : str, optional
        Name of the indicator layer.

    Returns
    -------
    RasterLayer
        Continuous layer: 1.0 where the class is present, 0.0 where another
        class is present, nan where the source is nodata. Its mean over an
        area is the proportion of that area covered by the class.
    """
    if not layer.categorical:
        raise ValueError(f"Layer '{layer.name}' is not categorical")

    data = (layer.data == value).astype('float64')
    data[layer.data == layer.nodata] = np.nan
    return layer._replace(
        data=data, nodata=np.nan, categorical=False,
        name=name or f"{layer.name}_{value}"
    )


def layer_summary(layer):
    """
    Summary statistics of a raster layer.

    Returns
    -------
    dict
        name, shape, crs, resolution, valid_cells, total_cells and, for
        continuous layers, min, max and mean of the valid cells. For
        categorical layers, the cell count of each class.
    """
    mask = valid_mask(layer)
    summary = {
        'name': layer.name,
        'shape': layer.data.shape,
        'crs': layer.crs.to_string(),
        'resolution': (layer.transform.a, abs(layer.transform.e)),
        'valid_cells': int(mask.sum()),
        'total_cells': int(mask.size),
    }
    values = layer.data[mask]
    if layer.categorical:
        codes, counts = np.unique(values, return_counts=True)
        summary['class_counts'] = {int(c): int(n) for c, n in zip(codes, counts)}
    elif len(values) > 0:
        summary['min'] = float(values.min())
        summary['max'] = float(values.max())
        summary['mean'] = float(values.mean())
    return summary
