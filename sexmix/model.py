"""Two-component, two-dimensional Beta mixture.

Each component models the (Y ratio, XIST ratio) feature pair as two
conditionally independent Beta variables. Shapes are stored as logs so the
optimizer works over an unconstrained vector; the effective shapes are
clamped to [clamp_min, clamp_max] to keep the log-density finite.

The M-step objective is

    J = sum_i log( z[i,0] * exp(l[i,0]) + z[i,1] * exp(l[i,1]) )

with z the responsibilities from the preceding E-step and l the
per-component log-likelihoods. This is not the expected complete-data
log-likelihood of textbook EM; its gradient weights each component's score
by that component's share of the log-sum-exp rather than by z directly.
"""

from __future__ import annotations

import numpy as np
from scipy.special import betaln, digamma

from sexmix.types import N_COMPONENTS, N_DIMS, MixtureParams

LOG2 = float(np.log(2.0))


def logaddexp(a, b):
    """Numerically stable log(exp(a) + exp(b)).

    Computed as max(a, b) + log1p(exp(-|a - b|)); exactly equal operands
    (including two infinities of the same sign) give a + log(2).
    Works elementwise on arrays; scalars in, float out.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    hi = np.maximum(a, b)
    with np.errstate(invalid="ignore"):
        out = hi + np.log1p(np.exp(-np.abs(a - b)))
    out = np.where(a == b, a + LOG2, out)
    if out.ndim == 0:
        return float(out)
    return out


def log_beta_pdf(x, a, b):
    """Log-density of Beta(a, b) at x."""
    x = np.asarray(x, dtype=np.float64)
    return (a - 1.0) * np.log(x) + (b - 1.0) * np.log1p(-x) - betaln(a, b)


class BetaMixtureModel:
    """Log-likelihood and score of the Beta mixture under log-shape parameters.

    All methods are pure: parameters and data come in as arguments and
    nothing is cached between calls, so one model can serve any number of
    objective evaluations.

    Usage:
        model = BetaMixtureModel()
        value, grad = model.objective_and_gradient(params.flat, features, z)
    """

    def __init__(self, clamp_min: float = 1e-7, clamp_max: float = 1e7):
        if not 0 < clamp_min < clamp_max:
            raise ValueError(
                f"Need 0 < clamp_min < clamp_max, got {clamp_min}, {clamp_max}"
            )
        self.clamp_min = clamp_min
        self.clamp_max = clamp_max
        self._log_min = float(np.log(clamp_min))
        self._log_max = float(np.log(clamp_max))

    def clip(self, params: MixtureParams) -> MixtureParams:
        """Project log-shapes into the clamp range."""
        return MixtureParams(np.clip(params.log_shapes, self._log_min, self._log_max))

    def shapes(self, log_shapes: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Clamped (alpha, beta), each of shape (N_COMPONENTS, N_DIMS)."""
        clipped = np.clip(log_shapes, self._log_min, self._log_max)
        shapes = np.exp(clipped)
        return shapes[..., 0], shapes[..., 1]

    def loglik(self, params: MixtureParams, features: np.ndarray) -> np.ndarray:
        """Per-sample, per-component log-likelihood, shape (n, N_COMPONENTS)."""
        return self._dim_loglik(params.log_shapes, features).sum(axis=2)

    def _dim_loglik(self, log_shapes: np.ndarray, features: np.ndarray) -> np.ndarray:
        a, b = self.shapes(log_shapes)
        x = features[:, np.newaxis, :]  # (n, 1, N_DIMS)
        return log_beta_pdf(x, a[np.newaxis], b[np.newaxis])  # (n, K, D)

    def score(self, log_shapes: np.ndarray, features: np.ndarray) -> np.ndarray:
        """Gradient of each per-dimension log-density w.r.t. the log-shapes.

        Returns shape (n, N_COMPONENTS, N_DIMS, 2). With alpha = exp(log_alpha)
        the chain rule gives alpha * (log x + psi(alpha + beta) - psi(alpha)),
        and symmetrically for beta with log(1 - x). Log-shapes outside the
        clamp range get zero gradient since the clamped density is flat there.
        """
        a, b = self.shapes(log_shapes)
        x = features[:, np.newaxis, :]
        psi_ab = digamma(a + b)
        g_alpha = a * (np.log(x) + psi_ab - digamma(a))
        g_beta = b * (np.log1p(-x) + psi_ab - digamma(b))
        grad = np.stack([g_alpha, g_beta], axis=-1)

        inside = (log_shapes >= self._log_min) & (log_shapes <= self._log_max)
        return grad * inside[np.newaxis]

    def objective_and_gradient(
        self,
        flat: np.ndarray,
        features: np.ndarray,
        responsibilities: np.ndarray,
    ) -> tuple[float, np.ndarray]:
        """Evaluate the M-step objective J and its gradient at ``flat``.

        Args:
            flat: 8-vector of log-shapes (see MixtureParams.flat).
            features: (n, 2) feature matrix.
            responsibilities: (n, 2) fixed E-step weights.

        Returns:
            (J, dJ/dflat). Both are freshly allocated on every call.
        """
        log_shapes = np.asarray(flat, dtype=np.float64).reshape(N_COMPONENTS, N_DIMS, 2)
        ll = self._dim_loglik(log_shapes, features).sum(axis=2)

        with np.errstate(divide="ignore"):
            log_z = np.log(responsibilities)
        p = log_z + ll
        per_sample = logaddexp(p[:, 0], p[:, 1])
        value = float(np.sum(per_sample))

        # Share of each component in the per-sample log-sum-exp.
        weights = np.exp(p - per_sample[:, np.newaxis])
        score = self.score(log_shapes, features)
        grad = np.einsum("ij,ijdk->jdk", weights, score)
        return value, grad.ravel()
