import base64
import io

import pytest
from PIL import Image

from qrisdinamis.crc import crc16_ccitt
from qrisdinamis.renderer import render_qr_payload
from qrisdinamis.tlv import parse_tlv

from .conftest import make_static_payload


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


def test_wrong_api_key_is_rejected(client, static_payload):
    response = client.post(
        "/v1/convert",
        json={"payload": static_payload, "amount": 1000},
        headers={"X-API-Key": "nope"},
    )

    assert response.status_code == 401


def test_convert(client, static_payload):
    response = client.post("/v1/convert", json={"payload": static_payload, "amount": 25000, "size": 256})

    assert response.status_code == 200
    body = response.json()
    assert body["merchant_name"] == "saktiJaya"
    assert body["amount"] == 25000
    assert body["amount_display"] == "Rp 25.000"
    assert body["payload"].endswith("6304" + body["crc"])
    assert crc16_ccitt(body["payload"][:-4]) == body["crc"]
    assert {item.tag: item.value for item in parse_tlv(body["payload"])}["54"] == "25000"

    image = Image.open(io.BytesIO(base64.b64decode(body["qr_png_base64"])))
    assert image.size == (256, 256)


def test_convert_without_render(client, static_payload):
    response = client.post("/v1/convert", json={"payload": static_payload, "amount": 5, "render": False})

    assert response.status_code == 200
    assert response.json()["qr_png_base64"] is None


def test_convert_invalid_amount(client, static_payload):
    response = client.post("/v1/convert", json={"payload": static_payload, "amount": 0})

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_INVALID_AMOUNT"


@pytest.mark.parametrize("amount", [True, "25000", 1.5, -5])
def test_convert_rejects_non_integer_amounts(client, static_payload, amount):
    response = client.post("/v1/convert", json={"payload": static_payload, "amount": amount})

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_INVALID_AMOUNT"


def test_convert_missing_amount_is_bad_payload(client, static_payload):
    response = client.post("/v1/convert", json={"payload": static_payload})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "ERR_BAD_PAYLOAD"
    assert "amount" in body["message"]


def test_render_rejects_size_below_minimum(client, static_payload):
    response = client.post("/v1/qr/render", json={"payload": static_payload, "size": 128})

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_BAD_PAYLOAD"


def test_convert_malformed_payload(client):
    response = client.post("/v1/convert", json={"payload": "000201010", "amount": 1000})

    assert response.status_code == 422
    assert response.json()["code"] == "ERR_MALFORMED_PAYLOAD"


def test_render_endpoint(client, static_payload):
    response = client.post("/v1/qr/render", json={"payload": static_payload, "size": 300})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert Image.open(io.BytesIO(response.content)).size == (300, 300)


def test_scan_text_payload(api, static_payload):
    response = api.post("/v1/scan", json={"payload": static_payload})

    assert response.status_code == 200
    body = response.json()
    assert body["payload"] == static_payload
    assert body["merchant_name"] == "saktiJaya"
    assert body["summary"]["merchant_city"] == "JAKARTA"
    assert body["summary"]["crc_valid"] is True
    assert body["summary"]["is_dynamic"] is False

    history = api.get("/v1/history").json()
    assert [entry["id"] for entry in history] == [body["history_id"]]


def test_scan_image(api, static_payload):
    image_base64 = render_qr_payload(static_payload)["png_base64"]

    response = api.post("/v1/scan", json={"image_base64": image_base64})

    assert response.status_code == 200
    assert response.json()["payload"] == static_payload


def test_scan_image_without_qr(api):
    buffer = io.BytesIO()
    Image.new("RGB", (120, 120), color="white").save(buffer, format="PNG")

    response = api.post("/v1/scan", json={"image_base64": base64.b64encode(buffer.getvalue()).decode()})

    assert response.status_code == 422
    assert response.json()["code"] == "ERR_QR_NOT_FOUND"
    assert api.get("/v1/history").json() == []


def test_scan_rejects_invalid_base64(api):
    response = api.post("/v1/scan", json={"image_base64": "!!not-base64!!"})

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_BAD_PAYLOAD"


def test_scan_requires_exactly_one_source(api, static_payload):
    for body in ({}, {"payload": static_payload, "image_base64": "AAAA"}):
        response = api.post("/v1/scan", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_BAD_PAYLOAD"


def test_scan_rejects_blank_payload(api):
    response = api.post("/v1/scan", json={"payload": "   "})

    assert response.status_code == 400
    assert response.json()["code"] == "ERR_BAD_PAYLOAD"
    assert api.get("/v1/history").json() == []


def test_scan_rejects_non_ascii_payload(api):
    response = api.post("/v1/scan", json={"payload": "5909sakt\u00edJaya"})

    assert response.status_code == 422
    assert response.json()["code"] == "ERR_MALFORMED_PAYLOAD"
    assert api.get("/v1/history").json() == []


def test_scan_malformed_payload_is_not_saved(api):
    response = api.post("/v1/scan", json={"payload": "5909sakti"})

    assert response.status_code == 422
    assert response.json()["code"] == "ERR_MALFORMED_PAYLOAD"
    assert api.get("/v1/history").json() == []


def test_history_deduplicates_and_orders_newest_first(api):
    first = make_static_payload("Toko Satu")
    second = make_static_payload("Toko Dua")

    api.post("/v1/scan", json={"payload": first})
    api.post("/v1/scan", json={"payload": second})
    api.post("/v1/scan", json={"payload": first})

    history = api.get("/v1/history").json()
    assert [entry["merchant_name"] for entry in history] == ["Toko Satu", "Toko Dua"]


def test_history_is_bounded(api):
    for idx in range(12):
        api.post("/v1/scan", json={"payload": make_static_payload(f"Toko {idx:02d}")})

    history = api.get("/v1/history").json()
    assert len(history) == 10
    assert history[0]["merchant_name"] == "Toko 11"
    assert history[-1]["merchant_name"] == "Toko 02"


def test_delete_history_entry(api, static_payload):
    entry_id = api.post("/v1/scan", json={"payload": static_payload}).json()["history_id"]

    assert api.delete(f"/v1/history/{entry_id}").status_code == 204
    assert api.get("/v1/history").json() == []

    response = api.delete(f"/v1/history/{entry_id}")
    assert response.status_code == 404
    assert response.json()["code"] == "ERR_NOT_FOUND"


def test_metrics_exposes_conversion_counter(client, static_payload):
    client.post("/v1/convert", json={"payload": static_payload, "amount": 1000, "render": False})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "qrisdinamis_conversions_total" in response.text


def test_render_endpoint_with_label(client, static_payload):
    response = client.post("/v1/qr/render", json={"payload": static_payload, "size": 300, "title": "saktiJaya"})

    assert response.status_code == 200
    assert Image.open(io.BytesIO(response.content)).size == (380, 420)
