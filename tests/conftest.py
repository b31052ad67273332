import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="qrisdinamis-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["API_KEY"] = "test-api-key"
os.environ["LOGGING__JSON_LOGS"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from qrisdinamis.crc import crc16_ccitt  # noqa: E402

API_KEY = os.environ["API_KEY"]


def tlv(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def seal(body: str) -> str:
    crc_input = body + "6304"
    return crc_input + crc16_ccitt(crc_input)


def make_static_payload(merchant_name: str = "saktiJaya", *extra: str) -> str:
    body = "".join(
        [
            tlv("00", "01"),
            tlv("01", "11"),
            tlv(
                "26",
                tlv("00", "ID.CO.QRIS.WWW") + tlv("01", "936009153012345678") + tlv("02", "ID1234567890123") + tlv("03", "UMI"),
            ),
            tlv("51", tlv("00", "ID.CO.QRIS.WWW") + tlv("02", "ID1020123456789") + tlv("03", "UMI")),
            tlv("52", "5812"),
            tlv("53", "360"),
            *extra,
            tlv("58", "ID"),
            tlv("59", merchant_name),
            tlv("60", "JAKARTA"),
            tlv("61", "12340"),
            tlv("62", tlv("07", "A01")),
        ]
    )
    return seal(body)


@pytest.fixture()
def static_payload() -> str:
    return make_static_payload()


@pytest.fixture(scope="session")
def client():
    from qrisdinamis.api import app

    # One client for the whole run keeps the async engine on a single event loop.
    with TestClient(app, headers={"X-API-Key": API_KEY}) as test_client:
        yield test_client


@pytest.fixture()
def api(client):
    for entry in client.get("/v1/history").json():
        client.delete(f"/v1/history/{entry['id']}")
    return client
