import pytest

from onetime_api import create_app

# RFC 4226 / RFC 6238 test secrets (ASCII "1234567890" repeated)
RFC_SECRET_SHA1 = b"12345678901234567890"
RFC_SECRET_SHA256 = b"12345678901234567890123456789012"
RFC_SECRET_SHA512 = b"1234567890123456789012345678901234567890123456789012345678901234"
RFC_SECRET_B32 = "GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ"


class FixedClock:
    """Test time source; set .now to move time."""

    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def app():
    return create_app({'TESTING': True})


@pytest.fixture
def client(app):
    return app.test_client()
