"""
Camtrap package for the camera-trap occupancy walkthrough.

This package contains the step-by-step logic used by the numbered scripts:
- config: Configuration parameters and paths
- vector: Site points, boundary polygons and reprojection
- detections: Sampling effort and detection summaries per site
- raster: Raster loading, reprojection and derived layers
- extraction: Point and buffer extraction of raster covariates
- models: Standardisation and binomial GLM fitting
- plotting: Maps and model figures
- pipeline: Runs the data stages end to end
"""

__version__ = "1.0.0"
