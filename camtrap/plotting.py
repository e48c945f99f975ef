"""
Map and model visualization functions.

This module contains functions for:
- Mapping camera sites over conservancy boundaries
- Displaying continuous and categorical raster layers
- Plotting detection proportions and covariate correlations
- Plotting predicted detection probability against a covariate
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.colors import ListedColormap
from matplotlib.patches import Patch
from rasterio.plot import plotting_extent

from camtrap.config import FIGURE_DPI, GROUP_COL


def _save(fig, output_path, label):
    plt.tight_layout()
    fig.savefig(output_path, dpi=FIGURE_DPI, bbox_inches='tight')
    plt.close(fig)
    print(f"{label} saved to {output_path}")


def plot_sites(sites, boundaries, output_path, study_area=None, group_col=GROUP_COL):
    """
    Map camera sites over conservancy boundaries.

    Parameters
    ----------
    sites : GeoDataFrame
        Site points in the same CRS as `boundaries`.
    boundaries : GeoDataFrame
        Conservancy polygons with a name column.
    output_path : str or Path
        Output file path for figure.
    study_area : GeoDataFrame, optional
        Study-area outline drawn beneath the conservancies.
    group_col : str, optional
        Site column used to colour points.

    Returns
    -------
    None
        Saves figure to file
    """
    fig, ax = plt.subplots(figsize=(8, 8))

    if study_area is not None:
        study_area.boundary.plot(ax=ax, color='black', linewidth=1.5)
    boundaries.plot(ax=ax, facecolor='none', edgecolor='grey', linewidth=0.8)

    if group_col in sites.columns:
        sites.plot(ax=ax, column=group_col, categorical=True, legend=True,
                   markersize=15, legend_kwds={'loc': 'lower left', 'fontsize': 8})
    else:
        sites.plot(ax=ax, color='tab:red', markersize=15)

    ax.set_title(f'Camera sites (n = {len(sites)})')
    ax.set_xlabel('Easting (m)')
    ax.set_ylabel('Northing (m)')
    _save(fig, output_path, 'Site map')


def plot_raster(layer, output_path, points=None, title=None, class_names=None, cmap='viridis'):
    """
    Display a single-band raster layer, optionally with site points.

    Parameters
    ----------
    layer : RasterLayer
        Raster to display.
    output_path : str or Path
        Output file path for figure.
    points : GeoDataFrame, optional
        Points in the layer's CRS drawn on top.
    title : str, optional
        Figure title. Defaults to the layer name.
    class_names : dict, optional
        Class code to name mapping for categorical layers (legend labels).
    cmap : str, optional
        Colour map for continuous layers.

    Returns
    -------
    None
        Saves figure to file
    """
    extent = plotting_extent(layer.data, layer.transform)
    fig, ax = plt.subplots(figsize=(8, 7))

    if layer.categorical:
        data = np.ma.masked_equal(layer.data, layer.nodata)
        codes = sorted(int(c) for c in np.unique(data.compressed()))
        palette = sns.color_palette('tab10', n_colors=max(len(codes), 1))
        # Map codes to consecutive indices so each class gets one colour
        index = np.ma.masked_array(np.searchsorted(codes, data.filled(codes[0] if codes else 0)),
                                   mask=np.ma.getmaskarray(data))
        ax.imshow(index, extent=extent, cmap=ListedColormap(palette),
                  vmin=-0.5, vmax=len(codes) - 0.5, interpolation='nearest')
        labels = class_names or {}
        handles = [Patch(color=palette[i], label=labels.get(code, str(code)))
                   for i, code in enumerate(codes)]
        ax.legend(handles=handles, loc='lower left', fontsize=8, framealpha=0.8)
    else:
        image = ax.imshow(np.ma.masked_invalid(layer.data), extent=extent, cmap=cmap)
        fig.colorbar(image, ax=ax, shrink=0.8, label=layer.name)

    if points is not None:
        ax.scatter(points.geometry.x, points.geometry.y, s=12, c='red',
                   edgecolors='white', linewidths=0.5)

    ax.set_title(title or layer.name)
    _save(fig, output_path, f"Raster plot of '{layer.name}'")


def plot_detection_histogram(table, output_path, species):
    """
    Histogram of per-site detection proportions.

    Parameters
    ----------
    table : DataFrame
        Site table with prop_detected.
    output_path : str or Path
        Output file path for figure
    species : str
        Species name for title

    Returns
    -------
    None
        Saves figure to file
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(table['prop_detected'], bins=20, range=(0, 1), edgecolor='black', alpha=0.7)
    ax.set_xlabel('Proportion of sampled days with a detection')
    ax.set_ylabel('Number of sites')
    ax.set_title(f'{species}: detection proportions')
    ax.grid(True, alpha=0.3)

    n_zero = int((table['prop_detected'] == 0).sum())
    ax.text(0.95, 0.95, f'{n_zero} of {len(table)} sites without detections',
            transform=ax.transAxes, ha='right', va='top',
            bbox=dict(boxstyle='round', facecolor='white', alpha=0.8))
    _save(fig, output_path, 'Detection histogram')


def plot_covariate_correlations(table, covariates, output_path):
    """
    Heatmap of pairwise Pearson correlations between covariates.

    Returns
    -------
    None
        Saves figure to file
    """
    corr = table[covariates].corr()
    fig, ax = plt.subplots(figsize=(1.0 + 0.8 * len(covariates), 0.8 * len(covariates) + 0.5))
    sns.heatmap(corr, annot=True, fmt='.2f', cmap='RdBu_r', vmin=-1, vmax=1,
                square=True, ax=ax, cbar_kws={'shrink': 0.8})
    ax.set_title('Covariate correlations')
    _save(fig, output_path, 'Correlation heatmap')


def plot_effect(effect, table, covariate, output_path, species):
    """
    Predicted detection probability against one covariate.

    Parameters
    ----------
    effect : DataFrame
        Output of models.predict_effect().
    table : DataFrame
        Site table with prop_detected and days_sampled, drawn as points sized
        by sampling effort.
    covariate : str
        Covariate on the x axis.
    output_path : str or Path
        Output file path for figure
    species : str
        Species name for title

    Returns
    -------
    None
        Saves figure to file
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.scatter(table[covariate], table['prop_detected'], s=table['days_sampled'],
               alpha=0.4, color='grey', edgecolors='none', label='Sites (size = days sampled)')
    ax.plot(effect[covariate], effect['probability'], color='tab:blue', label='Predicted')
    ax.fill_between(effect[covariate], effect['ci_lower'], effect['ci_upper'],
                    color='tab:blue', alpha=0.2, label='95% CI')
    ax.set_xlabel(covariate)
    ax.set_ylabel('Detection probability per day')
    ax.set_ylim(0, 1)
    ax.set_title(f'{species}: effect of {covariate}')
    ax.legend(loc='upper right', fontsize=8)
    ax.grid(True, alpha=0.3)
    _save(fig, output_path, 'Effect plot')
