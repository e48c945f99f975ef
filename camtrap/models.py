"""
Binomial regression models of species detection.

This module contains functions for:
- Standardizing covariates to zero mean and unit variance
- Fitting binomial GLMs (logit link) weighted by days sampled
- Tabulating coefficients and comparing models by deviance and AIC
- Predicting detection probability across a covariate's range
"""

from collections import namedtuple
from pathlib import Path

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.preprocessing import StandardScaler

from camtrap.config import GLM_MAXITER


FittedModel = namedtuple(
    'FittedModel', ['name', 'result', 'covariates', 'categorical', 'scaler', 'n_sites']
)


def standardize(df, columns):
    """
    Standardize covariates to zero mean and unit variance.

    Parameters
    ----------
    df : DataFrame
        Table holding the covariates.
    columns : list of str
        Columns to standardize.

    Returns
    -------
    tuple of (DataFrame, StandardScaler or None)
        - Copy of `df` with the columns replaced by z-scores
        - Fitted scaler (mean_ and scale_ hold the raw-scale parameters);
          None when `columns` is empty

    Raises
    ------
    ValueError
        If a column is constant, since it cannot be scaled.

    Notes
    -----
    Uses the population standard deviation (ddof=0), as StandardScaler does.
    """
    result = df.copy()
    if len(columns) == 0:
        return result, None

    constant = [c for c in columns if df[c].nunique(dropna=True) <= 1]
    if constant:
        raise ValueError(f"Cannot standardize constant columns: {constant}")

    scaler = StandardScaler()
    result[columns] = scaler.fit_transform(df[columns].astype(float).values)
    return result, scaler


def _design_matrix(data, covariates, categorical):
    X = pd.DataFrame({'const': 1.0}, index=data.index)
    for col in covariates:
        X[col] = data[col].astype(float)
    if categorical is not None:
        dummies = pd.get_dummies(data[categorical], prefix=categorical,
                                 drop_first=True, dtype=float)
        X = pd.concat([X, dummies], axis=1)
    return X


def fit_binomial_glm(table, covariates, successes='days_detected', trials='days_sampled',
                     categorical=None, scale=True, name=None):
    """
    Fit a binomial GLM with a logit link to per-site detection counts.

    Parameters
    ----------
    table : DataFrame
        Site table with detection counts, effort and covariates.
    covariates : list of str
        Continuous covariate columns. An empty list fits an intercept-only
        model.
    successes : str, optional
        Column with the number of days the species was detected.
    trials : str, optional
        Column with the number of days sampled.
    categorical : str, optional
        Categorical column (e.g. conservancy) entered as treatment dummies,
        first level alphabetically as the reference.
    scale : bool, optional
        Standardize continuous covariates before fitting. Default True, so
        slopes are per standard deviation of the covariate.
    name : str, optional
        Model label used in comparison tables.

    Returns
    -------
    FittedModel
        Named tuple holding the statsmodels results, the covariates, the
        scaler (None if unscaled) and the number of sites.

    Raises
    ------
    ValueError
        If a column is missing, any covariate value is missing, a site has
        zero trials, or successes are negative or exceed trials.

    Notes
    -----
    The response is the (detected, not detected) day pair for each site, so
    each site contributes as many Bernoulli trials as it has sampled days.
    statsmodels fits by iteratively reweighted least squares; convergence
    problems surface as statsmodels warnings or errors.
    """
    columns = [successes, trials] + list(covariates)
    if categorical is not None:
        columns.append(categorical)
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise ValueError(f"Site table is missing columns: {missing}")

    incomplete = table[columns].isna().any(axis=1)
    if incomplete.any():
        raise ValueError(
            f"{incomplete.sum()} sites have missing values in {columns}; "
            "drop or fill them before fitting"
        )
    if (table[trials] <= 0).any():
        raise ValueError(f"All sites need {trials} > 0")
    if (table[successes] < 0).any():
        raise ValueError(f"{successes} must not be negative")
    over = table[successes] > table[trials]
    if over.any():
        raise ValueError(
            f"{successes} exceeds {trials} at {over.sum()} sites; check the effort and "
            "detection tables"
        )

    if scale:
        data, scaler = standardize(table, list(covariates))
    else:
        data, scaler = table, None

    X = _design_matrix(data, list(covariates), categorical)
    detected = table[successes].to_numpy(dtype=float)
    endog = np.column_stack([detected, table[trials].to_numpy(dtype=float) - detected])

    model = sm.GLM(endog, X, family=sm.families.Binomial())
    result = model.fit(maxiter=GLM_MAXITER)

    label = name or ('null' if len(covariates) == 0 else ' + '.join(covariates))
    print(f"Fitted model '{label}': {len(table)} sites, AIC={aic(result):.2f}")
    return FittedModel(label, result, list(covariates), categorical, scaler, len(table))


def aic(result):
    """Akaike Information Criterion: -2 * log-likelihood + 2 * k."""
    return -2 * result.llf + 2 * len(result.params)


def coefficient_table(fitted):
    """
    Tabulate the coefficients of a fitted model.

    Returns
    -------
    DataFrame
        Indexed by term, with estimate, std_err, z, p_value, ci_lower,
        ci_upper and odds_ratio columns.
    """
    result = fitted.result
    ci = result.conf_int()
    return pd.DataFrame({
        'estimate': result.params,
        'std_err': result.bse,
        'z': result.tvalues,
        'p_value': result.pvalues,
        'ci_lower': ci.iloc[:, 0],
        'ci_upper': ci.iloc[:, 1],
        'odds_ratio': np.exp(result.params),
    })


def model_comparison(models):
    """
    Compare fitted models by residual deviance and AIC.

    Parameters
    ----------
    models : list of FittedModel
        Models fitted to the same sites.

    Returns
    -------
    DataFrame
        One row per model sorted by AIC, with columns name, n_sites, k,
        log_likelihood, deviance, aic and delta_aic.

    Raises
    ------
    ValueError
        If the models were fitted to different numbers of sites, which makes
        their likelihoods incomparable.
    """
    n_sites = {m.n_sites for m in models}
    if len(n_sites) > 1:
        raise ValueError(f"Models were fitted to different numbers of sites: {sorted(n_sites)}")

    rows = [{
        'name': m.name,
        'n_sites': m.n_sites,
        'k': len(m.result.params),
        'log_likelihood': m.result.llf,
        'deviance': m.result.deviance,
        'aic': aic(m.result),
    } for m in models]

    comparison = pd.DataFrame(rows).sort_values('aic').reset_index(drop=True)
    comparison['delta_aic'] = comparison['aic'] - comparison['aic'].min()
    return comparison


def predict_effect(fitted, covariate, table, n_points=100):
    """
    Predicted detection probability across the observed range of a covariate.

    Other continuous covariates are held at their mean (0 on the standardized
    scale) and the categorical covariate, if any, at its reference level.

    Parameters
    ----------
    fitted : FittedModel
        Model containing `covariate`.
    covariate : str
        Covariate to vary.
    table : DataFrame
        Site table the model was fitted to, in raw units.
    n_points : int, optional
        Number of prediction points. Default 100.

    Returns
    -------
    DataFrame
        Columns <covariate> (raw units), probability, ci_lower, ci_upper.
    """
    if covariate not in fitted.covariates:
        raise ValueError(f"'{covariate}' is not a covariate of model '{fitted.name}'")

    raw = np.linspace(table[covariate].min(), table[covariate].max(), n_points)
    if fitted.scaler is not None:
        idx = fitted.covariates.index(covariate)
        values = (raw - fitted.scaler.mean_[idx]) / fitted.scaler.scale_[idx]
    else:
        values = raw

    exog_names = fitted.result.model.exog_names
    X = pd.DataFrame(0.0, index=range(n_points), columns=exog_names)
    X['const'] = 1.0
    if fitted.scaler is None:
        # Unscaled covariates are held at their raw mean
        for col in fitted.covariates:
            X[col] = table[col].mean()
    X[covariate] = values

    frame = fitted.result.get_prediction(X).summary_frame(alpha=0.05)
    return pd.DataFrame({
        covariate: raw,
        'probability': frame['mean'].values,
        'ci_lower': frame['mean_ci_lower'].values,
        'ci_upper': frame['mean_ci_upper'].values,
    })


def save_model_summary(fitted, output_path):
    """
    Write the statsmodels summary and coefficient table of a model to text.

    Parameters
    ----------
    fitted : FittedModel
        Model to describe.
    output_path : str or Path
        Output text file.

    Returns
    -------
    None
        Writes the summary to file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        f.write(f"Model: {fitted.name}\n")
        f.write("="*80 + "\n\n")
        f.write(fitted.result.summary().as_text())
        units = "standardized" if fitted.scaler is not None else "raw"
        f.write(f"\n\nCoefficients ({units} covariates):\n")
        f.write(coefficient_table(fitted).to_string(float_format=lambda v: f"{v:.4f}"))
        f.write(f"\n\nResidual deviance: {fitted.result.deviance:.4f}\n")
        f.write(f"AIC: {aic(fitted.result):.4f}\n")

    print(f"Model summary saved to {output_path}")
