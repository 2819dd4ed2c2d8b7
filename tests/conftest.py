"""
Pytest configuration and shared fixtures for posdefml tests.

This module provides JAX-aware fixtures and configuration for testing
MDM classification on positive-definite matrices.
"""
import zlib

import pytest
import jax
import jax.numpy as jnp

# Default tolerances of the iterative means assume 64-bit precision
jax.config.update("jax_enable_x64", True)


@pytest.fixture(scope="session")
def base_key():
    """Root PRNG key for all tests."""
    return jax.random.PRNGKey(42)


@pytest.fixture
def key(base_key, request):
    """Per-test PRNG key derived from test name for reproducibility."""
    test_id = zlib.crc32(request.node.nodeid.encode()) % (2**31)
    return jax.random.fold_in(base_key, test_id)


@pytest.fixture(params=[2, 3, 5])
def dim(request):
    """Parametrized matrix size for testing across scales."""
    return request.param


@pytest.fixture
def two_class_data(key):
    """Two well separated classes of 5 matrices of size 3×3, labels 1 and 2."""
    from tests.geometry.generators import spd_class_data
    return spd_class_data(key, dim=3, class_sizes=(5, 5))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "invariant: mathematical invariant verification")
