"""EM training of the two-component Beta mixture.

THE CORE MODULE. Alternates:
- E-step: per-sample component responsibilities from the current shapes
- M-step: numerical maximization of the responsibility-weighted
  log-sum-exp objective (see sexmix.model) over the 8 log-shapes

until the log-shapes stop moving, or an iteration cap is hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.special import logsumexp

from sexmix.model import BetaMixtureModel
from sexmix.optimize import OptimizerConfig, minimize
from sexmix.types import N_COMPONENTS, N_DIMS, FitResult, MixtureParams

logger = logging.getLogger(__name__)


@dataclass
class EMConfig:
    """Configuration for EM training.

    Attributes:
        max_iterations: Cap on E/M cycles.
        tolerance: Convergence threshold on the max absolute change of any
            log-shape between cycles.
        init_scale: Scale s of the initial shapes.
        clamp_min: Lower clamp on alpha and beta.
        clamp_max: Upper clamp on alpha and beta.
        optimizer: Settings for the inner minimizer.
    """

    max_iterations: int = 500
    tolerance: float = 1e-5
    init_scale: float = 1.0
    clamp_min: float = 1e-7
    clamp_max: float = 1e7
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)


class BetaMixtureEM:
    """EM trainer for the female/male Beta mixture.

    Deterministic: the initial shapes are derived from feature means, so the
    same features always produce the same fit.

    Usage:
        em = BetaMixtureEM(EMConfig())
        result = em.fit(features)
    """

    def __init__(self, config: EMConfig | None = None):
        self.config = config or EMConfig()
        self.model = BetaMixtureModel(self.config.clamp_min, self.config.clamp_max)

    def fit(self, features: np.ndarray) -> FitResult:
        """Train the mixture on an (n, 2) feature matrix.

        Returns:
            FitResult. ``converged`` is False when ``max_iterations`` cycles
            ran without the parameters settling; the last parameters and
            their responsibilities are still returned.
        """
        cfg = self.config
        features = np.asarray(features, dtype=np.float64)
        if features.ndim != 2 or features.shape[1] != N_DIMS:
            raise ValueError(f"features must have shape (n, {N_DIMS}), got {features.shape}")
        if features.shape[0] == 0:
            raise ValueError("Cannot fit a mixture to zero samples")

        logger.info("EM training on %d samples", features.shape[0])

        params = self._initialize(features)
        trace: list[float] = []
        converged = False
        iteration = 0

        for iteration in range(1, cfg.max_iterations + 1):
            z = self._e_step(params, features)
            new_params, value = self._m_step(params, features, z)
            trace.append(value)

            delta = new_params.max_abs_diff(params)
            params = new_params
            logger.debug("Iteration %d: J=%.6f, max|delta|=%.3g", iteration, value, delta)

            if delta < cfg.tolerance:
                converged = True
                break

        if converged:
            logger.info("EM converged after %d iterations", iteration)
        else:
            logger.warning(
                "EM did not converge within %d iterations (tolerance %g)",
                cfg.max_iterations, cfg.tolerance,
            )

        return FitResult(
            params=params,
            responsibilities=self._e_step(params, features),
            converged=converged,
            n_iterations=iteration,
            objective_trace=trace,
        )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def _initialize(self, features: np.ndarray) -> MixtureParams:
        """Asymmetric start along the female/male axis.

        Component 0 starts with a low Y-ratio alpha and a high XIST-ratio
        alpha (female-like), component 1 the reverse. Every beta starts at s.
        """
        s = self.config.init_scale
        mean_y, mean_x = features.mean(axis=0)

        log_shapes = np.empty((N_COMPONENTS, N_DIMS, 2))
        log_shapes[0, 0, 0] = np.log(0.5 * s * mean_y)
        log_shapes[0, 1, 0] = np.log(2.0 * s * mean_x)
        log_shapes[1, 0, 0] = np.log(2.0 * s * mean_y)
        log_shapes[1, 1, 0] = np.log(0.5 * s * mean_x)
        log_shapes[..., 1] = np.log(s)
        return MixtureParams(log_shapes)

    # ------------------------------------------------------------------
    # E-step
    # ------------------------------------------------------------------

    def _e_step(self, params: MixtureParams, features: np.ndarray) -> np.ndarray:
        """Responsibilities z[i, j] proportional to exp(loglik(j, x_i)).

        Normalized in log space so that very peaked components do not
        overflow or underflow to an all-zero row.
        """
        ll = self.model.loglik(params, features)
        log_norm = logsumexp(ll, axis=1, keepdims=True)
        return np.exp(ll - log_norm)

    # ------------------------------------------------------------------
    # M-step
    # ------------------------------------------------------------------

    def _m_step(
        self,
        params: MixtureParams,
        features: np.ndarray,
        responsibilities: np.ndarray,
    ) -> tuple[MixtureParams, float]:
        """Maximize the objective with responsibilities held fixed.

        Returns the clipped optimum and the objective value there.
        """

        def neg_objective(flat: np.ndarray) -> tuple[float, np.ndarray]:
            value, grad = self.model.objective_and_gradient(flat, features, responsibilities)
            return -value, -grad

        outcome = minimize(neg_objective, params.flat, self.config.optimizer)
        new_params = self.model.clip(MixtureParams.from_flat(outcome.x))
        value, _ = self.model.objective_and_gradient(new_params.flat, features, responsibilities)
        return new_params, value
