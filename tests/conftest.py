import numpy as np
import pytest


@pytest.fixture(autouse=True)
def seed_rng():
    np.random.seed(1234)
