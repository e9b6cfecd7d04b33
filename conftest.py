# Ensure tests import the service package from this directory first.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from minimirror.models import MirrorConfig  # noqa: E402
from minimirror.utils_tests.upstream_mock import RecordingUpstream  # noqa: E402

TEST_TARGET_DOMAIN = "https://origin.example"
TEST_SECONDARY_DOMAIN = "https://cdn.example"


@pytest.fixture
def mirror_config():
    return MirrorConfig(
        target_domain=TEST_TARGET_DOMAIN,
        secondary_domains=(TEST_SECONDARY_DOMAIN,),
    )


@pytest.fixture
def make_client(mirror_config):
    """Build a TestClient for a mirror app whose upstream is ``upstream``."""
    from fastapi.testclient import TestClient

    from minimirror.server import create_app

    def _make(upstream: RecordingUpstream, config: MirrorConfig = None):
        app = create_app(config or mirror_config, transport=upstream.transport)
        return TestClient(app)

    return _make
