import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="video_api_tests_")

for _key, _value in {
    "DB_PATH": os.path.join(_TEST_ROOT, "app.db"),
    "JWT_SECRET": "test-secret-that-is-long-enough-for-hs256",
    "PLATFORM": "dev",
    "FILEPATH_ROOT": os.path.join(_TEST_ROOT, "app"),
    "ASSETS_ROOT": os.path.join(_TEST_ROOT, "assets"),
    "S3_BUCKET": "test-bucket",
    "S3_REGION": "us-east-1",
    "S3_CF_DISTRO": "https://cdn.example.test",
    "AWS_ACCESS_KEY_ID": "test-access-key",
    "AWS_SECRET_ACCESS_KEY": "test-secret-key",
    "PORT": "8091",
    "UPLOAD_TMP_DIR": os.path.join(_TEST_ROOT, "tmp"),
}.items():
    os.environ.setdefault(_key, _value)

import pytest  # noqa: E402

from main import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_thumbnail_cache():
    """Keep in-memory thumbnail state isolated between tests."""
    app.state.thumbnail_cache.clear()
    yield
    app.state.thumbnail_cache.clear()
