import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from fakes import API, FakeSession  # noqa: E402
from retdec_client.config import Settings  # noqa: E402
from retdec_client.services.pipeline import RetdecService  # noqa: E402


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        api_key="secret",
        api_url=API,
        poll_interval_s=0,
        request_timeout_s=5,
        output_dir=tmp_path,
    )


@pytest.fixture
def service(test_settings, session):
    return RetdecService(test_settings, session=session)
