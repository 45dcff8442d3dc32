"""
Shared fixtures for gateway tests.

The portal is replaced by ScriptedSession (see tests/fixtures/portal.py) and
time by FakeClock, so every test runs offline and deterministically.
"""

import pytest

from tax_gateway_core.auth.token_store import TokenStore
from tax_gateway_core.config import AuthorityCredentials, PortalConfig, RetryConfig, reset_config
from tax_gateway_core.context.company_context import CompanyContext
from tax_gateway_core.exceptions import clear_correlation_id
from tax_gateway_core.gateway import EInvoiceGateway, EWayBillGateway
from tax_gateway_core.utils.logger import reset_logging
from tests.fixtures.portal import (
    BASE_URL,
    COMPANY_GSTIN,
    FakeClock,
    ScriptedSession,
    SleepRecorder,
    eway_login_ok,
)


@pytest.fixture(autouse=True)
def clean_global_state():
    """Reset configuration, logging, company and correlation state between tests."""
    reset_config()
    reset_logging()
    clear_correlation_id()
    CompanyContext.clear_current_gstin()
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()
    CompanyContext.clear_current_gstin()


@pytest.fixture
def portal_config() -> PortalConfig:
    return PortalConfig(
        base_url=BASE_URL,
        api_key="test-api-key",
        api_secret="test-api-secret",
        environment="test",
        timeout=5,
    )


@pytest.fixture
def credentials() -> AuthorityCredentials:
    return AuthorityCredentials(username="company-user", password="company-pass", gstin=COMPANY_GSTIN)


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_retries=3, initial_delay=1.0, max_delay=30.0, multiplier=2.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_store(clock) -> TokenStore:
    return TokenStore(clock=clock)


@pytest.fixture
def session() -> ScriptedSession:
    return ScriptedSession()


@pytest.fixture
def eway_session() -> ScriptedSession:
    return ScriptedSession(authority_login=eway_login_ok)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def einvoice_gateway(portal_config, credentials, retry_config, session, token_store, sleeper):
    return EInvoiceGateway(
        portal=portal_config,
        credentials=credentials,
        retry=retry_config,
        session=session,
        token_store=token_store,
        sleep=sleeper,
    )


@pytest.fixture
def eway_gateway(portal_config, credentials, retry_config, eway_session, token_store, sleeper):
    return EWayBillGateway(
        portal=portal_config,
        credentials=credentials,
        retry=retry_config,
        session=eway_session,
        token_store=token_store,
        sleep=sleeper,
    )
