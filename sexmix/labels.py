"""Mapping of the two anonymous mixture components to female / male.

Female samples have a lower Y-chromosome ratio and a higher XIST ratio
than male samples, so the component whose Beta means sit lower on Y and
higher on XIST is called female. When the two signals disagree, or the
fitted posteriors do not actually split the samples, the resolution is
flagged ambiguous and the default order (component 0 female) is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from sexmix.types import MixtureParams

logger = logging.getLogger(__name__)

DEFAULT_FEMALE = 0
DEFAULT_MALE = 1


@dataclass
class LabelResolution:
    """Which component is female and which is male.

    Attributes:
        female_index: Column of the responsibilities holding female_prob.
        male_index: Column holding male_prob.
        ambiguous: True when the default assignment was used as a fallback.
        reason: Human-readable explanation when ambiguous.
        means: (2, 2) fitted Beta means (component x [Y, XIST]).
    """

    female_index: int
    male_index: int
    ambiguous: bool = False
    reason: str = ""
    means: np.ndarray | None = None

    def apply(self, responsibilities: np.ndarray) -> np.ndarray:
        """Reorder responsibility columns into (female_prob, male_prob)."""
        return responsibilities[:, [self.female_index, self.male_index]]


def resolve_labels(
    params: MixtureParams,
    responsibilities: np.ndarray | None = None,
    min_spread: float = 0.5,
) -> LabelResolution:
    """Decide which fitted component is female.

    Args:
        params: Converged mixture parameters.
        responsibilities: Optional (n, 2) posteriors. When given, a fit
            whose female posterior varies by less than ``min_spread`` across
            samples is treated as ambiguous: the components did not separate
            the batch into two groups.
        min_spread: Minimum max-minus-min of a posterior column.

    Returns:
        LabelResolution; ``ambiguous`` is set instead of raising.
    """
    means = params.means()
    y0, x0 = means[0]
    y1, x1 = means[1]

    if y0 < y1 and x0 > x1:
        resolution = LabelResolution(0, 1, means=means)
    elif y1 < y0 and x1 > x0:
        resolution = LabelResolution(1, 0, means=means)
    else:
        resolution = LabelResolution(
            DEFAULT_FEMALE,
            DEFAULT_MALE,
            ambiguous=True,
            reason=(
                "Y-ratio and XIST-ratio means disagree on component order "
                f"(Y: {y0:.3g} vs {y1:.3g}, XIST: {x0:.3g} vs {x1:.3g})"
            ),
            means=means,
        )

    if not resolution.ambiguous and responsibilities is not None and len(responsibilities):
        female = responsibilities[:, resolution.female_index]
        spread = float(np.max(female) - np.min(female))
        if spread < min_spread:
            resolution.female_index = DEFAULT_FEMALE
            resolution.male_index = DEFAULT_MALE
            resolution.ambiguous = True
            resolution.reason = (
                f"posteriors do not separate the samples (spread {spread:.3g} < {min_spread})"
            )

    if resolution.ambiguous:
        logger.warning(
            "Ambiguous sex classification, defaulting to component %d = female: %s. "
            "Input may not contain both sexes.",
            resolution.female_index, resolution.reason,
        )
    else:
        logger.info(
            "Component %d resolved as female, component %d as male",
            resolution.female_index, resolution.male_index,
        )
    return resolution
