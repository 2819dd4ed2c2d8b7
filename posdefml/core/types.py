"""
Core enumerations for Riemannian classification of PD matrices.

This module defines the closed sets of choices the rest of the package
dispatches on:

- Metric: Distance/mean structure over positive-definite matrices
- PredictMode: What an MDM model returns from predict
- Scoring: How a cross-validation fold is summarized

Every enum accepts loose user spellings through ``parse`` so that the
command line and keyword arguments can use plain strings.

Reference: Congedo, M. et al. (2017). "Riemannian geometry for EEG-based
brain-computer interfaces; a primer and a review"
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Union

from .errors import InvalidArgument


def _normalize(name: str) -> str:
    return name.lower().replace("-", "").replace("_", "").replace(" ", "")


class Metric(Enum):
    """
    Metric on the manifold of positive-definite matrices.

    The metric fixes both the distance used to compare matrices and the
    mean used to summarize a class:

    - EUCLIDEAN: Frobenius distance, arithmetic mean
    - INV_EUCLIDEAN: Frobenius distance of inverses, harmonic mean
    - CHO_EUCLIDEAN: Frobenius distance of Cholesky factors
    - LOG_EUCLIDEAN: Frobenius distance of matrix logarithms
    - LOG_CHOLESKY: Log-Cholesky distance (Lin, 2019)
    - FISHER: Affine-invariant metric, Karcher mean (iterative)
    - LOGDET0: Root log-determinant divergence, S-mean (iterative)
    - JEFFREY: Symmetrized Kullback-Leibler divergence
    - WASSERSTEIN: Bures-Wasserstein metric, barycenter (iterative)
    """
    EUCLIDEAN = "euclidean"
    INV_EUCLIDEAN = "inv_euclidean"
    CHO_EUCLIDEAN = "cho_euclidean"
    LOG_EUCLIDEAN = "log_euclidean"
    LOG_CHOLESKY = "log_cholesky"
    FISHER = "fisher"
    LOGDET0 = "logdet0"
    JEFFREY = "jeffrey"
    WASSERSTEIN = "wasserstein"

    @property
    def iterative(self) -> bool:
        """True if the mean under this metric needs a fixed-point solver."""
        return self in (Metric.FISHER, Metric.LOGDET0, Metric.WASSERSTEIN)

    @classmethod
    def parse(cls, value: Union[str, 'Metric']) -> 'Metric':
        """Accept a Metric or a case/separator-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = _normalize(value)
            if key in _METRIC_NAMES:
                return _METRIC_NAMES[key]
        raise InvalidArgument(
            f"Unknown metric {value!r}. "
            f"Choose one of: {', '.join(m.value for m in cls)}"
        )


_METRIC_NAMES: Dict[str, Metric] = {_normalize(m.value): m for m in Metric}
_METRIC_NAMES.update({
    "riemann": Metric.FISHER,
    "affineinvariant": Metric.FISHER,
    "ld0": Metric.LOGDET0,
    "bureswasserstein": Metric.WASSERSTEIN,
    "harmonic": Metric.INV_EUCLIDEAN,
})


class PredictMode(Enum):
    """
    Output of MDM prediction.

    - LABELS: Class serial of the nearest mean
    - PROBABILITIES: Softmax of the negated squared distances
    - FUNCTIONS: Squared distances over their geometric mean
    """
    LABELS = "labels"
    PROBABILITIES = "probabilities"
    FUNCTIONS = "functions"

    @classmethod
    def parse(cls, value: Union[str, 'PredictMode']) -> 'PredictMode':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = _normalize(value)
            for mode in cls:
                if key in (mode.value, mode.value[0]):
                    return mode
        raise InvalidArgument(
            f"Unsupported prediction mode {value!r}. "
            f"Use 'labels', 'probabilities' or 'functions'"
        )


class Scoring(Enum):
    """
    Summary score of one cross-validation fold.

    - BALANCED: Mean of per-class recall (robust to class imbalance)
    - PLAIN: Overall fraction of correct predictions
    """
    BALANCED = "balanced"
    PLAIN = "plain"

    @property
    def description(self) -> str:
        return "balanced accuracy" if self is Scoring.BALANCED else "accuracy"

    @classmethod
    def parse(cls, value: Union[str, 'Scoring']) -> 'Scoring':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = _normalize(value)
            if key in ("balanced", "b", "balancedaccuracy"):
                return cls.BALANCED
            if key in ("plain", "p", "accuracy", "a"):
                return cls.PLAIN
        raise InvalidArgument(
            f"Unsupported scoring {value!r}. Use 'balanced' or 'plain'"
        )


__all__ = [
    'Metric',
    'PredictMode',
    'Scoring',
]
