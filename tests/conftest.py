"""
Shared pytest configuration and fixtures for eventdesign tests.

This module provides common event arrays, a deterministic spline-basis
service and configuration isolation used across the test suite.
"""

import numpy as np
import pytest

from eventdesign.config.settings import reset_default_config


ENV_VARS = [
    "EVENTDESIGN_LOG_LEVEL",
    "EVENTDESIGN_CODING_SCHEMA",
    "EVENTDESIGN_SPLINE_SPACING",
]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Run every test against a default configuration."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_default_config()
    yield
    reset_default_config()


@pytest.fixture
def fixation_events():
    """Fixations with a continuous and a three-level categorical attribute, plus stimuli."""
    return [
        {"type": "fix", "x": 1.0, "cond": "A", "speed": 1.0},
        {"type": "fix", "x": 2.0, "cond": "B", "speed": 2.0},
        {"type": "fix", "x": 3.0, "cond": "C", "speed": 3.0},
        {"type": "stim", "x": 9.0, "cond": "A", "speed": 4.0},
        {"type": "fix", "x": 4.0, "cond": "A", "speed": 5.0},
        {"type": "fix", "x": 5.0, "cond": "B", "speed": 6.0},
        {"type": "fix", "x": 6.0, "cond": "C", "speed": 7.0},
    ]


@pytest.fixture
def two_group_events():
    """Events of two types sharing a categorical 'cond' and a continuous 'condition'."""
    return [
        {"type": "A", "cond": "lo", "condition": 1.0},
        {"type": "A", "cond": "hi", "condition": 2.0},
        {"type": "B", "cond": "lo", "condition": 3.0},
        {"type": "B", "cond": "hi", "condition": 5.0},
    ]


def linear_spline_basis(values, knot_count, spacing):
    """Spline-basis stand-in: column j is (j + 1) * value, missing values give zero rows."""
    values = np.asarray(values, dtype=float)
    missing = np.flatnonzero(np.isnan(values))
    filled = np.nan_to_num(values)
    basis = np.column_stack([filled * (j + 1) for j in range(knot_count)])
    labels = [str(j + 1) for j in range(knot_count)]
    return basis, labels, missing


@pytest.fixture
def fake_spline_basis():
    """Deterministic spline-basis service."""
    return linear_spline_basis


# Markers for different test types
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (medium speed)"
    )
