import io

import numpy as np
from PIL import Image


def _upload(client, auth_header, png: bytes) -> dict:
    files = {"file": ("sample.png", png, "image/png")}
    r = client.post("/images/upload", headers=auth_header, files=files)
    assert r.status_code == 201, r.text
    return r.json()["image"]


def _download(client, auth_header, image_id: str) -> np.ndarray:
    r = client.get(f"/images/{image_id}/download", headers=auth_header)
    assert r.status_code == 200
    return np.asarray(Image.open(io.BytesIO(r.content)))


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "chromakit-derivation"
    assert client.get("/health").json() == {"status": "healthy"}


def test_requires_bearer_token(client):
    assert client.get("/images").status_code == 401


def test_upload_and_list(client, auth_header, png_bytes):
    image = _upload(client, auth_header, png_bytes())
    assert image["original_id"] is None
    assert (image["width"], image["height"]) == (4, 4)

    r = client.get("/images", headers=auth_header)
    assert r.status_code == 200
    assert any(img["id"] == image["id"] for img in r.json()["images"])


def test_batch_is_anchored_to_root(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes(color=(100, 100, 100)))

    r = client.post(
        "/processing/batch",
        headers=auth_header,
        json={"image_id": root["id"], "operations": [{"operation": "brightness", "params": {"factor": 1.5}}]},
    )
    assert r.status_code == 200, r.text
    b = r.json()
    assert b["root_image_id"] == root["id"]

    # editing the edit still starts from the original upload
    r = client.post(
        "/processing/batch",
        headers=auth_header,
        json={"image_id": b["id"], "operations": [{"operation": "brightness", "params": {"factor": 1.5}}]},
    )
    assert r.status_code == 200, r.text
    c = r.json()
    assert c["original_image_id"] == b["id"]
    assert c["root_image_id"] == root["id"]
    assert client.get(f"/images/{c['id']}", headers=auth_header).json()["original_id"] == root["id"]
    assert (_download(client, auth_header, c["id"]) == 150).all()

    r = client.get(f"/images/{c['id']}/versions", headers=auth_header)
    assert r.status_code == 200
    versions = r.json()
    assert versions["root"]["id"] == root["id"]
    assert [v["id"] for v in versions["versions"]] == [b["id"], c["id"]]


def test_batch_applies_operations_in_order(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes(w=6, h=4))
    operations = [
        {"operation": "crop", "params": {"x_start": 0, "x_end": 4, "y_start": 0, "y_end": 2}},
        {"operation": "rotate", "params": {"angle": 90}},
        {"operation": "grayscale_luminosity", "params": {}},
    ]
    r = client.post(
        "/processing/batch", headers=auth_header, json={"image_id": root["id"], "operations": operations}
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert (data["width"], data["height"]) == (2, 4)
    assert [op["operation"] for op in data["operations_applied"]] == [
        "crop",
        "rotate",
        "grayscale_luminosity",
    ]


def test_inverted_crop_rejected_and_nothing_saved(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes())
    r = client.post(
        "/processing/batch",
        headers=auth_header,
        json={
            "image_id": root["id"],
            "operations": [
                {"operation": "invert", "params": {}},
                {"operation": "crop", "params": {"x_start": 3, "x_end": 1, "y_start": 0, "y_end": 2}},
            ],
        },
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_parameter"

    assert client.get("/history", headers=auth_header).json()["total"] == 0
    assert len(client.get("/images", headers=auth_header).json()["images"]) == 1


def test_unknown_operation(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes())
    r = client.post(
        "/processing/batch",
        headers=auth_header,
        json={"image_id": root["id"], "operations": [{"operation": "sharpen", "params": {}}]},
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "unknown_operation"


def test_other_users_image_is_not_found(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes())
    r = client.post(
        "/processing/negative",
        headers={"Authorization": "Bearer someone-else"},
        json={"image_id": root["id"]},
    )
    assert r.status_code == 404
    assert r.json()["kind"] == "not_found"


def test_histogram_endpoint(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes(color=(10, 20, 30)))
    r = client.get(f"/processing/{root['id']}/histogram", headers=auth_header)
    assert r.status_code == 200
    hist = r.json()["histogram"]
    assert set(hist) == {"red", "green", "blue"}
    assert hist["red"][10] == 16
    assert hist["green"][20] == 16
    assert sum(hist["blue"]) == 16


def test_single_op_endpoints(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes(w=8, h=6))
    rid = root["id"]
    requests = [
        ("/processing/brightness", {"image_id": rid, "factor": 1.2}),
        ("/processing/contrast", {"image_id": rid, "type": "logarithmic", "intensity": 2.0}),
        ("/processing/channel", {"image_id": rid, "channel": "cyan", "enabled": False}),
        ("/processing/grayscale", {"image_id": rid, "method": "midgray"}),
        ("/processing/binarize", {"image_id": rid, "threshold": 0.3}),
        ("/processing/negative", {"image_id": rid}),
        ("/processing/translate", {"image_id": rid, "dx": 2, "dy": -1}),
        ("/processing/rotate", {"image_id": rid, "angle": 30}),
        ("/processing/crop", {"image_id": rid, "x_start": 1, "x_end": 5, "y_start": 0, "y_end": 3}),
        ("/processing/reduce-resolution", {"image_id": rid, "factor": 2}),
        (
            "/processing/enlarge-region",
            {"image_id": rid, "x_start": 0, "x_end": 2, "y_start": 0, "y_end": 2, "zoom_factor": 3},
        ),
        ("/processing/merge", {"image1_id": rid, "image2_id": rid, "transparency": 0.5}),
        ("/processing/reset", {"image_id": rid}),
    ]
    for path, body in requests:
        r = client.post(path, headers=auth_header, json=body)
        assert r.status_code == 200, (path, r.text)
        assert r.json()["root_image_id"] == rid

    r = client.get("/history", headers=auth_header, params={"limit": 100})
    assert r.json()["total"] == len(requests)
    newest = r.json()["history"][0]
    assert newest["operation"] == "reset"


def test_crop_endpoint_dimensions(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes(w=8, h=6))
    r = client.post(
        "/processing/crop",
        headers=auth_header,
        json={"image_id": root["id"], "x_start": 1, "x_end": 5, "y_start": 2, "y_end": 5},
    )
    assert r.status_code == 200
    assert (r.json()["width"], r.json()["height"]) == (4, 3)


def test_history_list_get_delete_keeps_image(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes())
    r = client.post(
        "/processing/batch",
        headers=auth_header,
        json={
            "image_id": root["id"],
            "operations": [
                {"operation": "invert", "params": {}},
                {"operation": "brightness", "params": {"factor": 0.5}},
            ],
        },
    )
    new_id = r.json()["id"]

    r = client.get("/history", headers=auth_header)
    assert r.status_code == 200
    data = r.json()
    assert (data["total"], data["limit"], data["offset"]) == (1, 50, 0)
    item = data["history"][0]
    assert item["operation"] == "batch_process"
    assert [op["operation"] for op in item["params"]["operations"]] == ["invert", "brightness"]
    assert item["image_id"] == new_id
    assert item["root_image_id"] == root["id"]
    assert item["image"]["id"] == new_id

    assert client.get(f"/history/{item['id']}", headers=auth_header).status_code == 200
    r = client.delete(f"/history/{item['id']}", headers=auth_header)
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    assert client.get(f"/history/{item['id']}", headers=auth_header).status_code == 404
    assert client.get(f"/images/{new_id}", headers=auth_header).status_code == 200


def test_delete_image_rules(client, auth_header, png_bytes):
    root = _upload(client, auth_header, png_bytes())
    r = client.post("/processing/negative", headers=auth_header, json={"image_id": root["id"]})
    derived_id = r.json()["id"]

    r = client.delete(f"/images/{root['id']}", headers=auth_header)
    assert r.status_code == 400

    assert client.delete(f"/images/{derived_id}", headers=auth_header).status_code == 200
    assert client.get("/history", headers=auth_header).json()["total"] == 0
    assert client.delete(f"/images/{root['id']}", headers=auth_header).status_code == 200
    assert client.get(f"/images/{root['id']}", headers=auth_header).status_code == 404


def test_upload_rejects_non_image(client, auth_header):
    files = {"file": ("notes.txt", b"not an image", "text/plain")}
    r = client.post("/images/upload", headers=auth_header, files=files)
    assert r.status_code == 400


def test_openapi_documents_error_model(client):
    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    batch = schema["paths"]["/processing/batch"]["post"]["responses"]
    ref = batch["400"]["content"]["application/json"]["schema"]["$ref"]
    assert ref == "#/components/schemas/ErrorResponse"
