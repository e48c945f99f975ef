"""
Script 03: Prepare Raster Layers

Loads the environmental rasters, brings them onto the processing grid and
derives the layers used as covariates.

Workflow:
1. Load habitat classes, population counts and monthly climate
2. Reproject each to the processing CRS (nearest for classes, bilinear for
   continuous values)
3. Aggregate population counts to 1 km cells and convert to density
4. Log-transform density and average climate across months
5. Plot each layer with the camera sites on top

Input:  data/raw/habitat.tif, data/raw/population.tif, data/raw/climate.tif,
        data/raw/sites.csv
Output: results/figures/raster_*.png

Then run: python scripts/04_extract_covariates.py
"""

from camtrap import config
from camtrap.pipeline import require_inputs, prepare_layers
from camtrap.raster import load_raster, layer_summary
from camtrap.vector import load_sites
from camtrap.plotting import plot_raster

print("="*80)
print("SCRIPT 03: Prepare Raster Layers")
print("="*80)

require_inputs([config.SITES_FILE, config.HABITAT_FILE, config.POPULATION_FILE,
                config.CLIMATE_FILE])
config.RESULTS_FIGURES.mkdir(parents=True, exist_ok=True)

sites = load_sites(config.SITES_FILE, crs=config.PROCESSING_CRS)

# =========================================================================
# STEP 1: INSPECT THE RAW FILES
# =========================================================================
# Before changing anything, look at the CRS and resolution of each file.
# Mixing layers with different grids is the most common source of wrong
# extractions.

print("\nStep 1: Inspecting raw rasters...")
for path, categorical in [(config.HABITAT_FILE, True), (config.POPULATION_FILE, False),
                          (config.CLIMATE_FILE, False)]:
    summary = layer_summary(load_raster(path, categorical=categorical))
    print(f"  {summary['name']}: CRS {summary['crs']}, shape {summary['shape']}, "
          f"resolution {summary['resolution'][0]:g}")

# =========================================================================
# STEP 2: REPROJECT, AGGREGATE, DERIVE
# =========================================================================
# Class codes must never be averaged during reprojection (class 2.5 does not
# exist), so habitat uses nearest-neighbour resampling. Population counts
# are divided by the area of their own cells to get people per km2, and only
# then resampled and averaged into 1 km cells. Resampling the counts
# themselves would copy or drop people whenever the grids differ in size.
# The strong right skew is then tamed with log10(x + 1).

print("\nStep 2: Preparing layers on the processing grid...")
layers = prepare_layers()

print("\nPrepared layers:")
for name, layer in layers.items():
    summary = layer_summary(layer)
    extra = summary.get('class_counts', {k: round(summary[k], 2) for k in ['min', 'max', 'mean']
                                         if k in summary})
    print(f"  {name}: shape {summary['shape']}, valid cells {summary['valid_cells']:,} | {extra}")

# =========================================================================
# STEP 3: PLOTS
# =========================================================================

print("\nStep 3: Plotting layers...")
plot_raster(layers['habitat'], config.RESULTS_FIGURES / "raster_habitat.png",
            points=sites, title='Habitat classes', class_names=config.HABITAT_CLASSES)
plot_raster(layers['log_pop_density'], config.RESULTS_FIGURES / "raster_log_pop_density.png",
            points=sites, title='log10(people per km2 + 1)', cmap='magma')
plot_raster(layers['climate_mean'], config.RESULTS_FIGURES / "raster_climate_mean.png",
            points=sites, title='Mean across climate bands', cmap='YlGnBu')

print("\n" + "="*80)
print("EXERCISES")
print("="*80)
print("1. Reproject the habitat layer with resampling='bilinear'. Inspect the")
print("   class counts with layer_summary(). What went wrong?")
print("2. Try POPULATION_AGGREGATION = 5 and 20 in camtrap/config.py. How does the")
print("   density map change?")
print("3. Plot pop_density without the log transform. Which map is easier to read?")
print("\nThen run: python scripts/04_extract_covariates.py")
print("="*80)
