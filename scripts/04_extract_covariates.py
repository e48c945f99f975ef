"""
Script 04: Extract Site Covariates

Extracts raster and vector covariates at every camera site and writes the
flat per-site table used for modelling.

Workflow:
1. Prepare the raster layers (script 03)
2. Build the site table: detections (scripts 01-02), habitat proportions
   within 250/500/1000 m buffers, distance to water, population density
   and climate
3. Compare point extraction with buffer extraction for population density
4. Write the assembled covariate table

Input:  all files in data/raw/
Output: data/processed/site_covariates.csv
        results/figures/covariate_correlations.png

Then run: python scripts/05_fit_occupancy_models.py
"""

import numpy as np
import pandas as pd

from camtrap import config
from camtrap.extraction import extract_at_points
from camtrap.pipeline import prepare_layers, build_site_table
from camtrap.vector import site_coordinates
from camtrap.plotting import plot_covariate_correlations

print("="*80)
print("SCRIPT 04: Extract Site Covariates")
print("="*80)

config.DATA_PROCESSED.mkdir(parents=True, exist_ok=True)
config.RESULTS_FIGURES.mkdir(parents=True, exist_ok=True)

# =========================================================================
# STEP 1: FULL COVARIATE TABLE
# =========================================================================
# build_site_table() reruns the steps of scripts 01-02 and adds every
# covariate. Habitat classes are turned into one 0/1 layer per class; the
# mean of that layer within a buffer is the proportion of the buffer covered
# by the class. Continuous layers are averaged within COVARIATE_BUFFER m.

print("\nStep 1: Assembling the full covariate table...")
layers = prepare_layers()
table = build_site_table(config.SPECIES, layers=layers).reset_index(drop=True)

habitat_cols = [c for c in table.columns if c.startswith('hab_')]
covariate_cols = habitat_cols + ['dist_water', 'pop_density', 'log_pop_density',
                                 'climate_mean', 'livestock_prop']

print("\nCovariate summary:")
print(table[covariate_cols].describe().T[['mean', 'std', 'min', 'max']].round(3).to_string())

missing = table[covariate_cols].isna().sum()
if missing.any():
    print("\nWarning: sites with missing covariates (outside raster coverage):")
    print(missing[missing > 0].to_string())

# =========================================================================
# STEP 2: POINT VS BUFFER EXTRACTION
# =========================================================================
# A camera sees a few tens of meters, but the animals it records use a much
# larger area. Averaging a layer within a buffer describes that area rather
# than the single cell under the camera.

print("\nStep 2: Point versus buffer extraction of population density...")
at_point = extract_at_points(layers['log_pop_density'], table)
in_buffer = table['log_pop_density'].to_numpy()
comparison = pd.DataFrame({
    config.SITE_ID_COL: table[config.SITE_ID_COL],
    'point': at_point,
    f'buffer_{config.COVARIATE_BUFFER}m': in_buffer,
})
print(comparison.head(10).round(3).to_string(index=False))
valid = ~np.isnan(at_point) & ~np.isnan(in_buffer)
print(f"Correlation point vs buffer: {np.corrcoef(at_point[valid], in_buffer[valid])[0, 1]:.3f}")

# =========================================================================
# STEP 3: SAVE
# =========================================================================

output = pd.concat([site_coordinates(table), table.drop(columns=['geometry', config.SITE_ID_COL])],
                   axis=1)
output.to_csv(config.SITE_COVARIATES_FILE, index=False)
print(f"\nSaved {len(output)} sites to {config.SITE_COVARIATES_FILE}")

model_cols = sorted({c for cols in config.MODEL_SETS.values() for c in cols})
plot_covariate_correlations(table, model_cols, config.RESULTS_FIGURES / "covariate_correlations.png")

print("\n" + "="*80)
print("EXERCISES")
print("="*80)
print("1. Which habitat radius gives the widest spread of grassland proportions?")
print("   Why might the smallest buffer be noisy?")
print("2. Check that the habitat proportions at each radius sum to about 1 per")
print("   site. When would they not?")
print("3. Two covariates with |r| > 0.7 in the correlation plot should not enter")
print("   the same model. Are there any?")
print("\nThen run: python scripts/05_fit_occupancy_models.py")
print("="*80)
