import random

import pytest
from rest_framework.test import APIClient

from paygate.core.tests.helpers import identity_headers


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def user_headers() -> dict:
    return identity_headers("user-1")


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)
