"""Tests for the optimizer adapter."""

import numpy as np

from sexmix.optimize import OptimizeOutcome, OptimizerConfig, minimize


def _quadratic(x):
    target = np.array([1.0, -2.0, 0.5])
    diff = x - target
    return float(diff @ diff), 2.0 * diff


class TestMinimize:
    def test_quadratic(self):
        out = minimize(_quadratic, np.zeros(3))
        assert isinstance(out, OptimizeOutcome)
        assert out.success
        np.testing.assert_allclose(out.x, [1.0, -2.0, 0.5], atol=1e-5)
        assert out.value < 1e-9

    def test_rosenbrock_with_gradient(self):
        def rosen(x):
            v = (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2
            g = np.array([
                -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
                200 * (x[1] - x[0] ** 2),
            ])
            return v, g

        out = minimize(rosen, np.array([-1.2, 1.0]), OptimizerConfig(max_iterations=5000))
        np.testing.assert_allclose(out.x, [1.0, 1.0], atol=1e-3)

    def test_iteration_cap_respected(self):
        out = minimize(_quadratic, np.full(3, 50.0), OptimizerConfig(max_iterations=1))
        assert out.n_iterations <= 1

    def test_alternative_method(self):
        out = minimize(_quadratic, np.zeros(3), OptimizerConfig(method="L-BFGS-B"))
        np.testing.assert_allclose(out.x, [1.0, -2.0, 0.5], atol=1e-5)
