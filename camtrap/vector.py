"""
Site point and boundary polygon functions.

This module contains functions for:
- Converting the site metadata table to projected points
- Loading conservancy and study-area polygons
- Reconciling coordinate reference systems
- Assigning each site to its conservancy group
"""

import pandas as pd
import geopandas as gpd
from pyproj import CRS

from camtrap.config import (
    SITE_ID_COL, LON_COL, LAT_COL, GROUP_COL, BOUNDARY_NAME_COL,
    OUTSIDE_GROUP, STORAGE_CRS, PROCESSING_CRS
)


def sites_to_points(df, crs=PROCESSING_CRS, lon_col=LON_COL, lat_col=LAT_COL):
    """
    Convert a site metadata table to projected point records.

    Parameters
    ----------
    df : DataFrame
        Site table with a site identifier and WGS84 longitude/latitude columns.
    crs : str, optional
        Target projected CRS. Default is config.PROCESSING_CRS.
    lon_col, lat_col : str, optional
        Names of the coordinate columns.

    Returns
    -------
    GeoDataFrame
        One point per site in the target CRS. The coordinate columns are kept.

    Raises
    ------
    ValueError
        If required columns are missing, site identifiers repeat, or any
        coordinate is missing or outside the valid degree range.
    """
    missing = [c for c in [SITE_ID_COL, lon_col, lat_col] if c not in df.columns]
    if missing:
        raise ValueError(f"Site table is missing columns: {missing}")

    duplicated = df.loc[df[SITE_ID_COL].duplicated(), SITE_ID_COL].unique()
    if len(duplicated) > 0:
        raise ValueError(f"Duplicate site identifiers: {list(duplicated)}")

    lon = pd.to_numeric(df[lon_col], errors='coerce')
    lat = pd.to_numeric(df[lat_col], errors='coerce')
    bad = lon.isna() | lat.isna() | (lon.abs() > 180) | (lat.abs() > 90)
    if bad.any():
        raise ValueError(
            f"Invalid coordinates for sites: {list(df.loc[bad, SITE_ID_COL])}"
        )

    gdf = gpd.GeoDataFrame(
        df.copy(),
        geometry=gpd.points_from_xy(lon, lat),
        crs=STORAGE_CRS
    )
    return gdf.to_crs(crs)


def load_sites(path, crs=PROCESSING_CRS):
    """
    Read the site metadata CSV and return projected site points.

    Parameters
    ----------
    path : str or Path
        Path to the site CSV (site_id, longitude, latitude[, conservancy]).
    crs : str, optional
        Target projected CRS.

    Returns
    -------
    GeoDataFrame
        Site points in `crs`.
    """
    df = pd.read_csv(path, dtype={SITE_ID_COL: str})
    sites = sites_to_points(df, crs=crs)
    print(f"Loaded {len(sites):,} sites from {path}")
    return sites


def match_crs(gdf, target):
    """
    Reproject a GeoDataFrame to the CRS of another dataset.

    Parameters
    ----------
    gdf : GeoDataFrame
        Data to reproject.
    target : GeoDataFrame, RasterLayer, pyproj.CRS or str
        Anything carrying a CRS (a `crs` attribute) or a CRS definition.

    Returns
    -------
    GeoDataFrame
        `gdf` in the target CRS. Returned unchanged when the CRS already match.

    Raises
    ------
    ValueError
        If `gdf` has no CRS defined, since it cannot be reprojected safely.
    """
    if gdf.crs is None:
        raise ValueError("Input GeoDataFrame has no CRS; set it before reprojecting")

    target_crs = CRS.from_user_input(getattr(target, 'crs', target))
    if CRS.from_user_input(gdf.crs) == target_crs:
        return gdf
    return gdf.to_crs(target_crs)


def load_boundaries(path, crs=PROCESSING_CRS, name_col=BOUNDARY_NAME_COL):
    """
    Load boundary polygons and reproject them to the processing CRS.

    Parameters
    ----------
    path : str or Path
        Path to a polygon file readable by geopandas (shapefile, GeoPackage,
        GeoJSON).
    crs : str, optional
        Target CRS. Default is config.PROCESSING_CRS.
    name_col : str or None, optional
        Column holding the region name. If None, no name column is required.

    Returns
    -------
    GeoDataFrame
        Polygons in `crs`, with only the name column (if any) and geometry.
    """
    gdf = gpd.read_file(path)
    if name_col is not None and name_col not in gdf.columns:
        raise ValueError(f"Boundary file {path} has no '{name_col}' column")

    gdf = match_crs(gdf, crs)
    keep = [name_col, 'geometry'] if name_col is not None else ['geometry']
    print(f"Loaded {len(gdf)} features from {path}")
    return gdf[keep].reset_index(drop=True)


def assign_conservancy(sites, conservancies, name_col=BOUNDARY_NAME_COL,
                       group_col=GROUP_COL):
    """
    Assign each site to the conservancy polygon it falls within.

    Sites that already carry a group value keep it; the polygons only fill
    missing values. Sites outside every polygon get config.OUTSIDE_GROUP.

    Parameters
    ----------
    sites : GeoDataFrame
        Site points.
    conservancies : GeoDataFrame
        Conservancy polygons with a name column.
    name_col : str, optional
        Name column in `conservancies`.
    group_col : str, optional
        Group column to create or fill in `sites`.

    Returns
    -------
    GeoDataFrame
        Copy of `sites` with a complete `group_col`.
    """
    polygons = match_crs(conservancies, sites)[[name_col, 'geometry']]
    joined = gpd.sjoin(sites[[SITE_ID_COL, 'geometry']], polygons,
                       how='left', predicate='within')
    # A site on a shared border matches two polygons; keep the first
    joined = joined.drop_duplicates(subset=SITE_ID_COL)
    lookup = joined.set_index(SITE_ID_COL)[name_col]

    result = sites.copy()
    from_polygons = result[SITE_ID_COL].map(lookup)
    if group_col in result.columns:
        existing = result[group_col].replace('', pd.NA)
        result[group_col] = existing.fillna(from_polygons)
    else:
        result[group_col] = from_polygons
    result[group_col] = result[group_col].fillna(OUTSIDE_GROUP)

    counts = result[group_col].value_counts()
    print(f"Sites per {group_col}:")
    for group, count in counts.items():
        print(f"  {group}: {count}")
    return result


def site_coordinates(sites):
    """
    Return a plain table of projected site coordinates.

    Parameters
    ----------
    sites : GeoDataFrame
        Site points in a projected CRS.

    Returns
    -------
    DataFrame
        Columns site_id, x, y.
    """
    return pd.DataFrame({
        SITE_ID_COL: sites[SITE_ID_COL].values,
        'x': sites.geometry.x.values,
        'y': sites.geometry.y.values,
    })
