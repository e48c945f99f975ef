"""
Script 05: Fit Occupancy Models

Fits binomial regression models of daily detection to the per-site
covariate table and compares them.

Workflow:
1. Load the covariate table written by script 04
2. Standardize covariates (zero mean, unit variance)
3. Fit one binomial GLM (logit link) per covariate set in config.MODEL_SETS,
   each site weighted by its days sampled
4. Compare models by residual deviance and AIC
5. Save model summaries and effect plots for the best model

BEFORE RUNNING:
Ensure data/processed/site_covariates.csv exists (run script 04).

OUTPUT:
- results/models/{SPECIES}_<model>.txt
- results/models/{SPECIES}_model_comparison.csv
- results/figures/{SPECIES}_effect_<covariate>.png
"""

import pandas as pd

from camtrap import config
from camtrap.models import (
    standardize, fit_binomial_glm, coefficient_table, model_comparison,
    predict_effect, save_model_summary
)
from camtrap.plotting import plot_effect

print("="*80)
print("SCRIPT 05: Fit Occupancy Models")
print("="*80)
print(f"\nFocal species: {config.SPECIES}")

if not config.SITE_COVARIATES_FILE.exists():
    raise FileNotFoundError(
        f"Covariate table not found: {config.SITE_COVARIATES_FILE}\n"
        f"Please run script 04_extract_covariates.py first."
    )

config.RESULTS_MODELS.mkdir(parents=True, exist_ok=True)
config.RESULTS_FIGURES.mkdir(parents=True, exist_ok=True)

table = pd.read_csv(config.SITE_COVARIATES_FILE, dtype={config.SITE_ID_COL: str})
print(f"Loaded {len(table)} sites from {config.SITE_COVARIATES_FILE}")

# All models must be fitted to the same sites, otherwise their AICs cannot
# be compared. Drop sites missing any covariate used by any model.
model_cols = sorted({c for cols in config.MODEL_SETS.values() for c in cols})
complete = table[model_cols].notna().all(axis=1)
if not complete.all():
    print(f"Dropping {(~complete).sum()} sites with missing covariates")
table = table[complete].reset_index(drop=True)

# =========================================================================
# STEP 1: STANDARDIZE
# =========================================================================
# Covariates are on very different scales (meters to water, proportions of
# habitat). After z-scoring, each slope is the change in log-odds of
# detection per standard deviation, so slopes can be compared directly.

print("\nStep 1: Standardizing covariates...")
scaled, _ = standardize(table, model_cols)
print(scaled[model_cols].agg(['mean', 'std']).T.round(3).to_string())

# =========================================================================
# STEP 2: FIT MODELS
# =========================================================================
# Each site contributes days_detected successes out of days_sampled trials.
# The binomial GLM is fitted by iteratively reweighted least squares.

print("\nStep 2: Fitting models...")
models = []
for name, covariates in config.MODEL_SETS.items():
    group = config.GROUP_COL if (name == 'full' and config.INCLUDE_GROUP) else None
    fitted = fit_binomial_glm(table, covariates, categorical=group, name=name)
    models.append(fitted)
    save_model_summary(fitted, config.RESULTS_MODELS / f"{config.SPECIES}_{name}.txt")

# =========================================================================
# STEP 3: COMPARE
# =========================================================================

print("\nStep 3: Comparing models...")
comparison = model_comparison(models)
print(comparison.round(2).to_string(index=False))
comparison.to_csv(config.RESULTS_MODELS / f"{config.SPECIES}_model_comparison.csv", index=False)

best = next(m for m in models if m.name == comparison.loc[0, 'name'])
print(f"\nLowest AIC: '{best.name}'")
print(coefficient_table(best).round(3).to_string())

# =========================================================================
# STEP 4: EFFECT PLOTS
# =========================================================================

print("\nStep 4: Plotting covariate effects of the best model...")
for covariate in best.covariates:
    effect = predict_effect(best, covariate, table)
    plot_effect(effect, table, covariate,
                config.RESULTS_FIGURES / f"{config.SPECIES}_effect_{covariate}.png",
                config.SPECIES)

print("\n" + "="*80)
print("EXERCISES")
print("="*80)
print("1. Refit the 'full' model with scale=False. Do the p-values change? Do the")
print("   slopes? Why?")
print("2. Add a model with 'hab_grassland_1000' instead of 'hab_grassland_500' to")
print("   MODEL_SETS. Which buffer size does AIC prefer?")
print("3. exp(slope) is an odds ratio. Interpret the livestock_prop odds ratio")
print("   in words.")
print("4. Fit the same models for a second species and compare the signs of")
print("   the habitat effects.")
print("="*80)
