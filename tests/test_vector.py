"""
Tests for site points, boundaries and CRS handling.
"""

import unittest

import pandas as pd
import geopandas as gpd
from shapely.geometry import box

from camtrap.vector import (
    sites_to_points, match_crs, assign_conservancy, site_coordinates
)
from tests.synthetic import UTM_CRS


class TestSitePoints(unittest.TestCase):
    """Test conversion of the site table to projected points."""

    def setUp(self):
        self.df = pd.DataFrame({
            'site_id': ['A', 'B', 'C'],
            'longitude': [34.96, 35.02, 35.04],
            'latitude': [-1.52, -1.50, -1.48],
        })

    def test_points_are_projected(self):
        sites = sites_to_points(self.df, crs=UTM_CRS)
        self.assertEqual(sites.crs.to_epsg(), 32736)
        self.assertEqual(len(sites), 3)
        # UTM 36S eastings east of the 33E meridian and southern-hemisphere northings
        self.assertTrue((sites.geometry.x > 500000).all())
        self.assertTrue((sites.geometry.y > 9_800_000).all())

    def test_coordinate_columns_are_kept(self):
        sites = sites_to_points(self.df, crs=UTM_CRS)
        self.assertIn('longitude', sites.columns)
        self.assertListEqual(list(sites['site_id']), ['A', 'B', 'C'])

    def test_missing_column_raises(self):
        with self.assertRaises(ValueError):
            sites_to_points(self.df.drop(columns='latitude'), crs=UTM_CRS)

    def test_out_of_range_coordinates_raise(self):
        df = self.df.copy()
        df.loc[1, 'latitude'] = -95
        with self.assertRaisesRegex(ValueError, 'B'):
            sites_to_points(df, crs=UTM_CRS)

    def test_duplicate_sites_raise(self):
        df = pd.concat([self.df, self.df.iloc[[0]]], ignore_index=True)
        with self.assertRaisesRegex(ValueError, 'Duplicate'):
            sites_to_points(df, crs=UTM_CRS)

    def test_site_coordinates(self):
        sites = sites_to_points(self.df, crs=UTM_CRS)
        coords = site_coordinates(sites)
        self.assertListEqual(list(coords.columns), ['site_id', 'x', 'y'])
        self.assertAlmostEqual(coords['x'].iloc[0], sites.geometry.x.iloc[0])


class TestMatchCrs(unittest.TestCase):
    """Test CRS reconciliation."""

    def test_reprojects_to_target(self):
        gdf = gpd.GeoDataFrame(geometry=[box(34.9, -1.6, 35.0, -1.4)], crs='EPSG:4326')
        result = match_crs(gdf, UTM_CRS)
        self.assertEqual(result.crs.to_epsg(), 32736)

    def test_target_can_be_a_geodataframe(self):
        gdf = gpd.GeoDataFrame(geometry=[box(34.9, -1.6, 35.0, -1.4)], crs='EPSG:4326')
        target = gpd.GeoDataFrame(geometry=[], crs=UTM_CRS)
        self.assertEqual(match_crs(gdf, target).crs.to_epsg(), 32736)

    def test_same_crs_is_unchanged(self):
        gdf = gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1)], crs=UTM_CRS)
        self.assertIs(match_crs(gdf, UTM_CRS), gdf)

    def test_missing_crs_raises(self):
        gdf = gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1)])
        with self.assertRaises(ValueError):
            match_crs(gdf, UTM_CRS)


class TestAssignConservancy(unittest.TestCase):
    """Test point-in-polygon grouping of sites."""

    def setUp(self):
        self.conservancies = gpd.GeoDataFrame(
            {'name': ['West', 'East']},
            geometry=[box(34.9, -1.6, 35.0, -1.4), box(35.0, -1.6, 35.1, -1.4)],
            crs='EPSG:4326'
        )
        self.df = pd.DataFrame({
            'site_id': ['A', 'B', 'C'],
            'longitude': [34.95, 35.05, 36.0],
            'latitude': [-1.5, -1.5, -1.5],
        })

    def test_sites_get_enclosing_polygon(self):
        sites = sites_to_points(self.df, crs=UTM_CRS)
        result = assign_conservancy(sites, self.conservancies)
        self.assertListEqual(list(result['conservancy']), ['West', 'East', 'outside'])

    def test_existing_groups_are_kept(self):
        df = self.df.assign(conservancy=['Mara North', None, None])
        sites = sites_to_points(df, crs=UTM_CRS)
        result = assign_conservancy(sites, self.conservancies)
        self.assertListEqual(list(result['conservancy']), ['Mara North', 'East', 'outside'])

    def test_input_is_not_modified(self):
        sites = sites_to_points(self.df, crs=UTM_CRS)
        assign_conservancy(sites, self.conservancies)
        self.assertNotIn('conservancy', sites.columns)


if __name__ == '__main__':
    unittest.main()
