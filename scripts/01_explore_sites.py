"""
Script 01: Explore Camera Sites

Loads the camera-trap site table and the conservancy boundaries, and brings
them into one projected coordinate reference system.

Workflow:
1. Read site metadata (longitude/latitude in WGS84) and convert to points
2. Reproject the points to UTM zone 36S so distances are in meters
3. Load conservancy and study-area polygons and reconcile their CRS
4. Assign each site to the conservancy it falls in
5. Map the sites over the boundaries

Input:  data/raw/sites.csv
        data/raw/conservancies.shp
        data/raw/study_area.shp
Output: results/figures/site_map.png

Then run: python scripts/02_summarise_detections.py
"""

from camtrap import config
from camtrap.pipeline import require_inputs
from camtrap.vector import load_sites, load_boundaries, assign_conservancy, site_coordinates
from camtrap.plotting import plot_sites

print("="*80)
print("SCRIPT 01: Explore Camera Sites")
print("="*80)

require_inputs([config.SITES_FILE, config.CONSERVANCIES_FILE, config.STUDY_AREA_FILE])
config.RESULTS_FIGURES.mkdir(parents=True, exist_ok=True)

# =========================================================================
# STEP 1: SITE POINTS
# =========================================================================
# The site table stores coordinates in decimal degrees. Degrees are fine for
# locating a camera but not for measuring buffers, so every layer in this
# walkthrough is moved into a projected CRS with meter units.

print(f"\nStep 1: Loading sites and reprojecting to {config.PROCESSING_CRS}...")
sites = load_sites(config.SITES_FILE, crs=config.PROCESSING_CRS)

coords = site_coordinates(sites)
print("\nFirst five sites (projected meters):")
print(coords.head().to_string(index=False))
print(f"\nExtent: x {coords['x'].min():.0f}-{coords['x'].max():.0f}, "
      f"y {coords['y'].min():.0f}-{coords['y'].max():.0f}")

# =========================================================================
# STEP 2: BOUNDARY POLYGONS
# =========================================================================
# Boundary files often come in a different CRS from the sites. Reprojecting
# them to the processing CRS before any overlay avoids silent misalignment.

print("\nStep 2: Loading boundary polygons...")
conservancies = load_boundaries(config.CONSERVANCIES_FILE, crs=config.PROCESSING_CRS)
study_area = load_boundaries(config.STUDY_AREA_FILE, crs=config.PROCESSING_CRS, name_col=None)
print(f"Conservancies: {', '.join(conservancies[config.BOUNDARY_NAME_COL])}")

# =========================================================================
# STEP 3: CONSERVANCY GROUPS
# =========================================================================

print("\nStep 3: Assigning sites to conservancies...")
sites = assign_conservancy(sites, conservancies)

# =========================================================================
# STEP 4: MAP
# =========================================================================

print("\nStep 4: Mapping sites...")
plot_sites(sites, conservancies, config.RESULTS_FIGURES / "site_map.png", study_area=study_area)

print("\n" + "="*80)
print("EXERCISES")
print("="*80)
print("1. Reproject the sites to EPSG:4326 with sites.to_crs() and compare the")
print("   coordinates printed above. Why are buffers in degrees a bad idea?")
print("2. How many sites fall outside every conservancy? Where are they on the map?")
print("3. Change PROCESSING_CRS in camtrap/config.py to another UTM zone and")
print("   re-run. What happens to the map, and to distances between sites?")
print("\nThen run: python scripts/02_summarise_detections.py")
print("="*80)
