"""
Shared test configuration and fixtures for the DocuSign adapter test suite.
"""

import pytest

from ecm_docusign.core.config import DocuSignSettings, Settings, clear_settings_cache
from ecm_docusign.integrations.esignature.docusign_adapter import DocuSignSignatureEnvelopeAdapter

from tests.fakes import TEST_PRIVATE_KEY, FakeDocuSignApiClient


@pytest.fixture(autouse=True)
def reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def docusign_settings() -> DocuSignSettings:
    return DocuSignSettings(
        _env_file=None,
        integration_key="ik",
        user_id="uid",
        account_id="aid",
        private_key=TEST_PRIVATE_KEY,
        sandbox_mode=True,
    )


@pytest.fixture
def app_settings() -> Settings:
    return Settings(_env_file=None, esignature_provider="docusign")


@pytest.fixture
def fake_client() -> FakeDocuSignApiClient:
    return FakeDocuSignApiClient()


@pytest.fixture
def adapter(fake_client, docusign_settings) -> DocuSignSignatureEnvelopeAdapter:
    return DocuSignSignatureEnvelopeAdapter(fake_client, docusign_settings)
