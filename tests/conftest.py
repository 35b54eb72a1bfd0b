# ===============================================================================
# PYTEST CONFIGURATION FOR THE BILLABLE PLATFORM
# ===============================================================================
"""
Global test configuration.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- Naming convention: test_{app}_{feature}.py
- Stripe is never called: tests patch ``get_gateway`` or inject a gateway double

Django settings come from ``config.settings.test`` (see pyproject.toml).
"""

import pytest

from tests.factories.billing_factories import create_user, make_gateway


@pytest.fixture
def user(db):
    """Billable user that already is a Stripe customer"""
    return create_user()


@pytest.fixture
def gateway():
    """Stripe gateway double"""
    return make_gateway()
