"""
Tests for the mean estimator, distance evaluator and MDM classifier.

Tests cover:
- get_means dispatch and convergence failures
- get_distances shape and orientation
- MDM lifecycle (unfitted -> fitted -> refitted)
- Label, probability and output-function predictions
- Persistence and parallel fitting
"""
import pytest
import jax
import jax.numpy as jnp
import numpy as np

from posdefml import (
    MDM, Unfitted, Fitted, Metric,
    get_means, get_distances, geometric_mean, fit, predict,
    DimensionMismatch, InvalidArgument, UnfittedModelError, ConvergenceError,
)
from posdefml.mdm import check_labels, class_indices
from tests.geometry.generators import (
    random_spd_matrix, random_spd_collection, spd_cloud, spd_class_data,
    random_diagonal_unitary,
)
from tests.geometry.invariants import assert_probability_rows


def _scalars(*values):
    return jnp.array(values, dtype=jnp.float64)[:, None, None]


class TestGetMeans:

    def test_closed_form(self):
        X = jnp.stack([jnp.eye(2), 3 * jnp.eye(2)])
        np.testing.assert_allclose(get_means("euclidean", X), 2 * jnp.eye(2))

    def test_weighted(self):
        X = jnp.stack([jnp.eye(2), 3 * jnp.eye(2)])
        np.testing.assert_allclose(get_means("euclidean", X, weights=[1.0, 3.0]), 2.5 * jnp.eye(2))

    def test_fisher_of_scalars_is_geometric(self):
        np.testing.assert_allclose(get_means(Metric.FISHER, _scalars(1.0, 4.0, 16.0)),
                                   [[4.0]], rtol=1e-8)

    def test_accepts_list(self, key):
        X = random_spd_collection(key, 3, 3)
        np.testing.assert_allclose(
            get_means("log_euclidean", [X[i] for i in range(3)]), get_means("log_euclidean", X)
        )

    def test_non_convergence_default_tolerance(self, key):
        X = spd_cloud(key, random_spd_matrix(key, 3), 8, spread=0.5)
        with pytest.raises(ConvergenceError) as info:
            get_means(Metric.FISHER, X, max_iter=1)
        assert not info.value.user_tolerance
        assert info.value.iterations == 1
        assert "default tolerance" in str(info.value)

    def test_non_convergence_chosen_tolerance(self, key):
        X = spd_cloud(key, random_spd_matrix(key, 3), 8, spread=0.5)
        with pytest.raises(ConvergenceError, match="chosen tolerance"):
            get_means(Metric.WASSERSTEIN, X, tol=1e-14, max_iter=2)

    def test_loose_tolerance_accepted(self, key):
        X = spd_cloud(key, random_spd_matrix(key, 3), 8, spread=0.5)
        M = get_means(Metric.LOGDET0, X, tol=1e-3)
        assert M.shape == (3, 3)

    def test_unknown_metric(self):
        with pytest.raises(InvalidArgument):
            get_means("manhattan", jnp.eye(2)[None])


class TestGetDistances:

    def test_shape_is_classes_by_matrices(self, key):
        k1, k2 = jax.random.split(key)
        means = random_spd_collection(k1, 3, 4)
        X = random_spd_collection(k2, 7, 4)
        assert get_distances("fisher", means, X).shape == (3, 7)

    def test_zero_at_the_means(self, key):
        means = random_spd_collection(key, 2, 3)
        D = get_distances("log_euclidean", means, means)
        np.testing.assert_allclose(jnp.diag(D), jnp.zeros(2), atol=1e-10)
        assert jnp.all(D[0, 1] > 0)

    def test_size_mismatch(self, key):
        with pytest.raises(DimensionMismatch):
            get_distances("fisher", jnp.eye(2)[None], jnp.eye(3)[None])


class TestGeometricMean:

    def test_matches_fisher_mean_of_scalars(self):
        values = jnp.array([0.5, 2.0, 3.0, 7.0])
        expected = float(get_means("fisher", values[:, None, None])[0, 0])
        assert float(geometric_mean(values)) == pytest.approx(expected, rel=1e-8)

    def test_zero_stays_finite(self):
        assert jnp.isfinite(geometric_mean(jnp.array([0.0, 1.0])))


class TestLabels:

    def test_length_mismatch_message(self):
        with pytest.raises(DimensionMismatch, match="lengths of the data"):
            check_labels([1, 2, 1], 4)

    def test_zero_label_rejected(self):
        with pytest.raises(InvalidArgument):
            check_labels([0, 1, 1], 3)

    def test_fractional_label_rejected(self):
        with pytest.raises(InvalidArgument):
            check_labels([1.5, 1.0], 2)

    def test_integral_floats_accepted(self):
        np.testing.assert_array_equal(check_labels([1.0, 2.0], 2), [1, 2])

    def test_gap_in_serials_rejected(self):
        with pytest.raises(InvalidArgument, match=r"Classes \[2\]"):
            class_indices(np.array([1, 3, 3, 1]))

    def test_groups(self):
        groups = class_indices(np.array([2, 1, 2, 1, 1]))
        np.testing.assert_array_equal(groups[0], [1, 3, 4])
        np.testing.assert_array_equal(groups[1], [0, 2])


class TestLifecycle:

    def test_starts_unfitted(self):
        model = MDM()
        assert isinstance(model.state, Unfitted)
        assert model.metric is Metric.FISHER
        assert model.means is None
        assert model.n_classes == 0
        assert not model.is_fitted
        assert repr(model) == "MDM(metric=fisher, unfitted)"

    def test_predict_before_fit(self, key):
        with pytest.raises(UnfittedModelError):
            MDM("logdet0").predict(random_spd_collection(key, 2, 3))

    def test_bad_mode_reported_before_fit_check(self, key):
        with pytest.raises(InvalidArgument, match="prediction mode"):
            MDM().predict(random_spd_collection(key, 2, 3), "scores")

    def test_fit_sets_means(self, two_class_data):
        X, y = two_class_data
        model = MDM("fisher").fit(X, y)
        assert isinstance(model.state, Fitted)
        assert model.means.shape == (2, 3, 3)
        assert repr(model) == "MDM(metric=fisher, classes=2, features=3x3)"

    def test_means_are_class_means(self, two_class_data):
        X, y = two_class_data
        model = MDM("logdet0").fit(X, y)
        np.testing.assert_allclose(model.means[1], get_means("logdet0", X[y == 2]))

    def test_failed_fit_keeps_state(self, two_class_data):
        X, y = two_class_data
        model = MDM("euclidean")
        with pytest.raises(DimensionMismatch):
            model.fit(X, y[:-1])
        assert isinstance(model.state, Unfitted)

        model.fit(X, y)
        before = model.means
        with pytest.raises(InvalidArgument):
            model.fit(X, np.where(y == 2, 3, y))
        assert model.means is before

    def test_refit_replaces_means(self, key):
        k1, k2 = jax.random.split(key)
        X1, y1 = spd_class_data(k1, dim=3, class_sizes=(4, 4))
        X2, y2 = spd_class_data(k2, dim=2, class_sizes=(3, 3, 3))
        model = MDM("log_euclidean").fit(X1, y1)
        model.fit(X2, y2)
        assert model.means.shape == (3, 2, 2)

    def test_from_data(self, two_class_data):
        X, y = two_class_data
        model = MDM.from_data("jeffrey", X, y)
        assert model.metric is Metric.JEFFREY
        assert model.n_classes == 2

    def test_module_functions(self, two_class_data):
        X, y = two_class_data
        model = fit(MDM("wasserstein"), X, y)
        np.testing.assert_array_equal(predict(model, X), model.predict(X))


class TestWeights:

    def test_weighted_class_means(self):
        X = jnp.stack([jnp.eye(2), 3 * jnp.eye(2), 5 * jnp.eye(2), 7 * jnp.eye(2)])
        model = MDM("euclidean").fit(X, [1, 1, 2, 2], weights=[1.0, 3.0, 1.0, 1.0])
        np.testing.assert_allclose(model.means[0], 2.5 * jnp.eye(2))
        np.testing.assert_allclose(model.means[1], 6.0 * jnp.eye(2))

    def test_weight_length_mismatch(self, two_class_data):
        X, y = two_class_data
        with pytest.raises(DimensionMismatch):
            MDM("euclidean").fit(X, y, weights=[1.0] * 3)


class TestPredict:

    def test_labels(self, two_class_data):
        X, y = two_class_data
        labels = MDM("fisher").fit(X, y).predict(X)
        assert labels.shape == (10,)
        assert set(np.asarray(labels).tolist()) <= {1, 2}
        np.testing.assert_array_equal(labels, y)

    def test_means_predict_their_own_class(self, key):
        X, y = spd_class_data(key, dim=3, class_sizes=(4, 4, 4))
        model = MDM("log_cholesky").fit(X, y)
        np.testing.assert_array_equal(model.predict(model.means), [1, 2, 3])

    def test_ties_go_to_lowest_class(self):
        X = jnp.stack([jnp.eye(2)] * 4)
        model = MDM("euclidean").fit(X, [1, 1, 2, 2])
        assert int(model.predict(2 * jnp.eye(2))[0]) == 1

    def test_probabilities(self, two_class_data):
        X, y = two_class_data
        P = MDM("logdet0").fit(X, y).predict(X, "probabilities")
        assert P.shape == (10, 2)
        assert_probability_rows(P)
        np.testing.assert_array_equal(jnp.argmax(P, axis=1) + 1, y)

    def test_functions(self, two_class_data):
        X, y = two_class_data
        F = MDM("fisher").fit(X, y).predict(X, "functions")
        assert F.shape == (10, 2)
        # Each row is normalized by its own geometric mean
        np.testing.assert_allclose(jnp.prod(F, axis=1), jnp.ones(10), rtol=1e-8)
        np.testing.assert_array_equal(jnp.argmin(F, axis=1) + 1, y)

    def test_functions_single_class(self, key):
        X = random_spd_collection(key, 3, 3)
        model = MDM("euclidean").fit(X[:1], [1])
        np.testing.assert_allclose(model.predict(X, "functions"), jnp.ones((3, 1)))

    def test_predict_is_repeatable(self, two_class_data):
        X, y = two_class_data
        model = MDM("fisher").fit(X, y)
        means = model.means
        first = model.predict(X, "probabilities")
        second = model.predict(X, "probabilities")
        np.testing.assert_array_equal(first, second)
        assert model.means is means

    def test_size_mismatch(self, two_class_data, key):
        X, y = two_class_data
        model = MDM("euclidean").fit(X, y)
        with pytest.raises(DimensionMismatch):
            model.predict(random_spd_collection(key, 2, 4))


class TestPersistence:

    def test_save_load_round_trip(self, two_class_data, tmp_path):
        X, y = two_class_data
        model = MDM("log_euclidean").fit(X, y)
        path = tmp_path / "model.npz"
        model.save(path)
        restored = MDM.load(path)
        assert restored.metric is Metric.LOG_EUCLIDEAN
        np.testing.assert_allclose(restored.means, model.means)
        np.testing.assert_array_equal(restored.predict(X), model.predict(X))

    def test_unfitted_cannot_be_saved(self, tmp_path):
        with pytest.raises(UnfittedModelError):
            MDM().save(tmp_path / "model.npz")


class TestParallelFit:

    def test_same_means_with_threads(self, key):
        X, y = spd_class_data(key, dim=3, class_sizes=(4, 5, 6))
        serial = MDM("fisher").fit(X, y)
        parallel = MDM("fisher").fit(X, y, n_jobs=2)
        np.testing.assert_allclose(parallel.means, serial.means, atol=1e-12)


class TestHermitian:
    """Complex Hermitian PD input classifies like its real counterpart."""

    @pytest.mark.parametrize("metric", ["fisher", "logdet0", "wasserstein", "log_cholesky", "jeffrey"])
    def test_unitary_conjugation_keeps_labels(self, key, two_class_data, metric):
        X, y = two_class_data
        U = random_diagonal_unitary(key, 3)
        X_complex = U @ X @ jnp.conj(U).T
        assert jnp.iscomplexobj(X_complex)

        real = MDM(metric).fit(X, y)
        hermitian = MDM(metric).fit(X_complex, y)
        np.testing.assert_array_equal(hermitian.predict(X_complex), real.predict(X))
        np.testing.assert_allclose(
            get_distances(metric, hermitian.means, X_complex),
            get_distances(metric, real.means, X),
            rtol=1e-6, atol=1e-10,
        )
