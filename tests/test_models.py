"""
Tests for covariate standardization and binomial GLM fitting.
"""

import os
import tempfile
import unittest

import numpy as np
import pandas as pd
from scipy.special import expit

from camtrap.models import (
    standardize, fit_binomial_glm, aic, coefficient_table,
    model_comparison, predict_effect, save_model_summary
)


def simulated_sites(n_sites=60, seed=42):
    """Site table with detections drawn from a known logit-linear model."""
    rng = np.random.default_rng(seed)
    z1 = rng.normal(0, 1, n_sites)
    z2 = rng.normal(0, 1, n_sites)
    trials = rng.integers(20, 61, n_sites)
    p = expit(-1.0 + 1.2 * z1 - 0.5 * z2)
    return pd.DataFrame({
        'site_id': [f"S{i:03d}" for i in range(n_sites)],
        'days_sampled': trials,
        'days_detected': rng.binomial(trials, p),
        'grass': 10 + 3 * z1,
        'water': 2000 + 500 * z2,
        'conservancy': np.where(np.arange(n_sites) % 2 == 0, 'East', 'West'),
    })


class TestStandardize(unittest.TestCase):

    def test_zero_mean_unit_variance(self):
        table = simulated_sites()
        scaled, scaler = standardize(table, ['grass', 'water'])
        np.testing.assert_allclose(scaled[['grass', 'water']].mean(), 0, atol=1e-12)
        np.testing.assert_allclose(scaled[['grass', 'water']].std(ddof=0), 1)
        np.testing.assert_allclose(scaler.mean_, table[['grass', 'water']].mean())

    def test_input_is_not_modified(self):
        table = simulated_sites()
        original = table['grass'].copy()
        standardize(table, ['grass'])
        pd.testing.assert_series_equal(table['grass'], original)

    def test_no_columns(self):
        table = simulated_sites()
        scaled, scaler = standardize(table, [])
        self.assertIsNone(scaler)
        pd.testing.assert_frame_equal(scaled, table)

    def test_constant_column_raises(self):
        table = simulated_sites().assign(flat=1.0)
        with self.assertRaisesRegex(ValueError, 'flat'):
            standardize(table, ['grass', 'flat'])


class TestFitBinomialGlm(unittest.TestCase):

    def setUp(self):
        self.table = simulated_sites()

    def test_recovers_effect_directions(self):
        fitted = fit_binomial_glm(self.table, ['grass', 'water'])
        params = fitted.result.params
        self.assertGreater(params['grass'], 0)
        self.assertLess(params['water'], 0)
        self.assertLess(params['const'], 0)
        self.assertEqual(fitted.n_sites, 60)
        self.assertEqual(fitted.name, 'grass + water')

    def test_null_model(self):
        fitted = fit_binomial_glm(self.table, [])
        self.assertEqual(fitted.name, 'null')
        self.assertListEqual(list(fitted.result.params.index), ['const'])

        # Intercept-only MLE is the logit of the pooled detection rate
        pooled = self.table['days_detected'].sum() / self.table['days_sampled'].sum()
        expected = np.log(pooled / (1 - pooled))
        self.assertAlmostEqual(fitted.result.params['const'], expected, places=6)

    def test_aic_definition(self):
        fitted = fit_binomial_glm(self.table, ['grass'])
        expected = -2 * fitted.result.llf + 2 * 2
        self.assertAlmostEqual(aic(fitted.result), expected)
        self.assertAlmostEqual(aic(fitted.result), fitted.result.aic)

    def test_refit_is_deterministic(self):
        first = fit_binomial_glm(self.table, ['grass', 'water'])
        second = fit_binomial_glm(self.table, ['grass', 'water'])
        np.testing.assert_array_equal(first.result.params.values, second.result.params.values)

    def test_scaling_changes_slope_not_fit(self):
        scaled = fit_binomial_glm(self.table, ['grass'])
        raw = fit_binomial_glm(self.table, ['grass'], scale=False)
        self.assertIsNone(raw.scaler)
        self.assertAlmostEqual(scaled.result.llf, raw.result.llf, places=6)
        self.assertAlmostEqual(
            scaled.result.params['grass'],
            raw.result.params['grass'] * scaled.scaler.scale_[0],
            places=5
        )

    def test_categorical_dummies(self):
        fitted = fit_binomial_glm(self.table, ['grass'], categorical='conservancy')
        self.assertIn('conservancy_West', fitted.result.params.index)
        self.assertNotIn('conservancy_East', fitted.result.params.index)

    def test_missing_covariate_values_raise(self):
        table = self.table.copy()
        table.loc[3, 'grass'] = np.nan
        with self.assertRaises(ValueError):
            fit_binomial_glm(table, ['grass'])

    def test_zero_trials_raise(self):
        table = self.table.copy()
        table.loc[0, ['days_sampled', 'days_detected']] = 0
        with self.assertRaises(ValueError):
            fit_binomial_glm(table, ['grass'])

    def test_more_successes_than_trials_raise(self):
        table = self.table.copy()
        table.loc[5, 'days_detected'] = table.loc[5, 'days_sampled'] + 1
        with self.assertRaisesRegex(ValueError, 'exceeds'):
            fit_binomial_glm(table, ['grass'])

    def test_negative_successes_raise(self):
        table = self.table.copy()
        table.loc[2, 'days_detected'] = -1
        with self.assertRaises(ValueError):
            fit_binomial_glm(table, ['grass'])

    def test_unknown_column_raises(self):
        with self.assertRaisesRegex(ValueError, 'elevation'):
            fit_binomial_glm(self.table, ['elevation'])


class TestModelOutputs(unittest.TestCase):

    def setUp(self):
        self.table = simulated_sites()
        self.null = fit_binomial_glm(self.table, [])
        self.full = fit_binomial_glm(self.table, ['grass', 'water'])

    def test_coefficient_table(self):
        coefs = coefficient_table(self.full)
        self.assertListEqual(list(coefs.index), ['const', 'grass', 'water'])
        self.assertTrue((coefs['ci_lower'] < coefs['estimate']).all())
        self.assertTrue((coefs['estimate'] < coefs['ci_upper']).all())
        np.testing.assert_allclose(coefs['odds_ratio'], np.exp(coefs['estimate']))

    def test_comparison_is_sorted_by_aic(self):
        comparison = model_comparison([self.null, self.full])
        self.assertEqual(comparison.loc[0, 'name'], 'grass + water')
        self.assertEqual(comparison.loc[0, 'delta_aic'], 0)
        self.assertGreater(comparison.loc[1, 'delta_aic'], 0)
        self.assertLess(comparison.loc[0, 'deviance'], comparison.loc[1, 'deviance'])
        self.assertListEqual(list(comparison['k']), [3, 1])

    def test_comparison_needs_same_sites(self):
        subset = fit_binomial_glm(self.table.iloc[:40], [])
        with self.assertRaises(ValueError):
            model_comparison([self.full, subset])

    def test_predicted_effect(self):
        effect = predict_effect(self.full, 'grass', self.table, n_points=25)
        self.assertEqual(len(effect), 25)
        self.assertAlmostEqual(effect['grass'].iloc[0], self.table['grass'].min())
        self.assertAlmostEqual(effect['grass'].iloc[-1], self.table['grass'].max())
        self.assertTrue(effect['probability'].between(0, 1).all())
        self.assertTrue((effect['ci_lower'] <= effect['probability']).all())
        self.assertTrue((effect['probability'] <= effect['ci_upper']).all())
        self.assertTrue(np.all(np.diff(effect['probability']) > 0))

    def test_predicted_effect_needs_model_covariate(self):
        with self.assertRaises(ValueError):
            predict_effect(self.null, 'grass', self.table)

    def test_save_model_summary(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'models', 'full.txt')
            save_model_summary(self.full, path)
            with open(path) as f:
                text = f.read()
        self.assertIn('grass + water', text)
        self.assertIn('AIC:', text)
        self.assertIn('standardized', text)


if __name__ == '__main__':
    unittest.main()
