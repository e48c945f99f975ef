"""
Script 02: Summarise Detections

Joins sampling effort and tagged detections onto the camera sites and turns
detections into proportions of sampled days.

Workflow:
1. Summarise daily camera activity to days sampled per site, and drop
   detection events on inactive days
2. Summarise tagged events of the focal species to days detected and images
3. Count the days livestock were seen at each site
4. Left-join all summaries onto the sites, filling unmatched counts with 0
5. Drop unsampled sites, compute proportions, check the table

Input:  data/raw/sites.csv, data/raw/effort.csv, data/raw/detections.csv,
        data/raw/conservancies.shp
Output: results/figures/{SPECIES}_detection_histogram.png

Then run: python scripts/03_prepare_rasters.py
"""

from camtrap import config
from camtrap.pipeline import require_inputs, read_table
from camtrap.vector import load_sites, load_boundaries, assign_conservancy
from camtrap.detections import (
    summarise_effort, active_detections, summarise_detections, summarise_livestock,
    join_site_tables, detection_proportions, check_site_integrity
)
from camtrap.plotting import plot_detection_histogram

print("="*80)
print("SCRIPT 02: Summarise Detections")
print("="*80)
print(f"\nFocal species: {config.SPECIES}")

require_inputs([config.SITES_FILE, config.EFFORT_FILE, config.DETECTIONS_FILE,
                config.CONSERVANCIES_FILE])
config.RESULTS_FIGURES.mkdir(parents=True, exist_ok=True)

sites = load_sites(config.SITES_FILE, crs=config.PROCESSING_CRS)
sites = assign_conservancy(sites, load_boundaries(config.CONSERVANCIES_FILE))

effort = read_table(config.EFFORT_FILE)
detections = read_table(config.DETECTIONS_FILE)
print(f"Effort rows: {len(effort):,} | Detection events: {len(detections):,}")
print(f"Species tagged: {', '.join(sorted(detections['species'].unique()))}")

# =========================================================================
# STEP 1: EFFORT AND DETECTION SUMMARIES
# =========================================================================
# A camera can only detect an animal on days it was working, so events on
# days marked inactive are dropped before counting. Counting days
# (not events) keeps a herd that triggered 200 images from outweighing a
# site with one image on each of 20 days.

print("\nStep 1: Summarising effort and detections...")
effort_summary = summarise_effort(effort)
detections = active_detections(detections, effort)
detection_summary = summarise_detections(detections, config.SPECIES)
livestock_summary = summarise_livestock(detections, config.LIVESTOCK_SPECIES)
print(f"  Sites with effort records: {len(effort_summary)}")
print(f"  Sites with {config.SPECIES}: {len(detection_summary)}")
print(f"  Sites with livestock: {len(livestock_summary)}")

# =========================================================================
# STEP 2: JOIN AND ZERO-FILL
# =========================================================================
# A site that never recorded the species has no row in the detection
# summary. After a left join its counts are missing; they are set to 0
# because not seeing the species is a real observation, not missing data.

print("\nStep 2: Joining summaries onto sites...")
table = join_site_tables(sites, effort_summary, detection_summary, livestock_summary)

print("\nStep 3: Computing proportions of sampled days...")
table = detection_proportions(table)
check_site_integrity(table)
print("Integrity checks passed: 0 <= prop_detected <= 1, days_detected <= days_sampled")

cols = [config.SITE_ID_COL, config.GROUP_COL, 'days_sampled', 'days_detected',
        'n_images', 'prop_detected', 'livestock_prop']
print("\n" + table[cols].head(10).to_string(index=False))

print(f"\nNaive occupancy (sites with >= 1 detection): "
      f"{(table['days_detected'] > 0).mean():.2f}")
print("\nMean detection proportion by conservancy:")
print(table.groupby(config.GROUP_COL)['prop_detected'].mean().round(3).to_string())

plot_detection_histogram(
    table, config.RESULTS_FIGURES / f"{config.SPECIES}_detection_histogram.png", config.SPECIES
)

print("\n" + "="*80)
print("EXERCISES")
print("="*80)
print("1. Replace the zero-fill in join_site_tables with dropna(). How many sites")
print("   would you lose, and how would that bias the naive occupancy?")
print("2. Change SPECIES in camtrap/config.py to another tagged species and re-run.")
print("3. Which conservancy has the highest livestock pressure? Use groupby on")
print("   'livestock_prop'.")
print("\nThen run: python scripts/03_prepare_rasters.py")
print("="*80)
