"""
Riemannian Machine Learning on Positive-Definite Matrices

This package classifies symmetric/Hermitian positive-definite matrices,
typically covariance matrices of EEG/BCI trials, with the minimum distance
to mean (MDM) classifier. It provides:

Core Types (posdefml.core):
    - Metric: Fisher, logdet0, Wasserstein, Jeffrey, log-Euclidean, ...
    - PredictMode: labels / probabilities / functions
    - Scoring: balanced / plain accuracy
    - DimensionMismatch, InvalidArgument, ConvergenceError, UnfittedModelError

Manifold Primitives (posdefml.geometry):
    - distance_squared: d²(A, B) under any Metric
    - closed_form_mean / iterative_mean: class means
    - METRIC_TABLE: metric -> (distance, mean) dispatch

Classification (posdefml.mdm):
    - MDM: fit / predict / save / load
    - get_means, get_distances

Cross-Validation (posdefml.train_test):
    - cross_validate / cv_score: stratified k-fold scores and confusion matrices

Usage:
    from posdefml import MDM, cross_validate

    model = MDM("fisher").fit(X_train, y_train)
    labels = model.predict(X_test)
    result = cross_validate("fisher", X, y, n_folds=5)
"""

from .core import (
    Metric,
    PredictMode,
    Scoring,
    PosDefMLError,
    DimensionMismatch,
    InvalidArgument,
    UnfittedModelError,
    ConvergenceError,
)

from .geometry import (
    MetricOps,
    METRIC_TABLE,
    distance_squared,
    distances_squared,
    closed_form_mean,
    iterative_mean,
)

from .mdm import (
    MDM,
    Unfitted,
    Fitted,
    get_means,
    get_distances,
    geometric_mean,
    fit,
    predict,
)

from .train_test import (
    CVResult,
    cv_setup,
    confusion_matrix,
    balanced_accuracy,
    accuracy,
    cross_validate,
    cv_score,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Metric",
    "PredictMode",
    "Scoring",
    "PosDefMLError",
    "DimensionMismatch",
    "InvalidArgument",
    "UnfittedModelError",
    "ConvergenceError",
    # Geometry
    "MetricOps",
    "METRIC_TABLE",
    "distance_squared",
    "distances_squared",
    "closed_form_mean",
    "iterative_mean",
    # MDM
    "MDM",
    "Unfitted",
    "Fitted",
    "get_means",
    "get_distances",
    "geometric_mean",
    "fit",
    "predict",
    # Cross-validation
    "CVResult",
    "cv_setup",
    "confusion_matrix",
    "balanced_accuracy",
    "accuracy",
    "cross_validate",
    "cv_score",
]
