import base64


def _ingest(client, auth_header, data, **form):
    files = {"file": ("sample.png", data, "image/png")}
    return client.post("/images", headers=auth_header, files=files, data=form)


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    body = client.get("/").json()
    assert body["service"] == "imgvault"


def test_token_required(client):
    assert client.get("/images").status_code == 401
    assert client.get("/images", headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_ingest_get_and_list(client, auth_header, make_image):
    r = _ingest(
        client,
        auth_header,
        make_image(1),
        source_image_url="https://site.com/a/cat.png",
        source_page_url="https://site.com/a",
        page_title="Cats",
        tags="cat, pet",
    )
    assert r.status_code == 201, r.text
    record = r.json()
    assert record["fileType"] == "image/png"
    assert record["fileTypeSource"] == "file-object"
    assert record["tags"] == ["cat", "pet"]
    assert record["pixvidUrl"].startswith("/local-hosts/pixvid/")
    assert record["imgbbUrl"].startswith("/local-hosts/imgbb/")
    assert len(record["pHash"]) == 16

    r2 = client.get(f"/images/{record['id']}", headers=auth_header)
    assert r2.status_code == 200
    assert r2.json() == record

    listing = client.get("/images", headers=auth_header).json()
    assert listing["total"] == 1
    assert listing["images"][0]["id"] == record["id"]


def test_duplicate_returns_conflict_then_override(client, auth_header, make_image):
    assert _ingest(client, auth_header, make_image(2)).status_code == 201

    r = _ingest(client, auth_header, make_image(2))
    assert r.status_code == 409
    body = r.json()
    assert body["kind"] == "exact"
    assert body["inTrash"] is False
    assert body["existing"]["sha256"]

    r2 = _ingest(client, auth_header, make_image(2), ignore_duplicate="true")
    assert r2.status_code == 201
    assert client.get("/images", headers=auth_header).json()["total"] == 2


def test_inspect_does_not_store(client, auth_header, make_image):
    files = {"file": ("x.png", make_image(3), "image/png")}
    r = client.post("/images/inspect", headers=auth_header, files=files)
    assert r.status_code == 200
    body = r.json()
    assert body["duplicate"] is None
    assert body["width"] == 64
    assert client.get("/images", headers=auth_header).json()["total"] == 0


def test_ingest_from_data_url(client, auth_header, make_image):
    url = "data:image/png;base64," + base64.b64encode(make_image(4)).decode()
    r = client.post("/images/from-url", headers=auth_header, json={"imageUrl": url, "pageTitle": "Inline"})
    assert r.status_code == 201, r.text
    assert r.json()["sourceImageUrl"] == ""
    assert r.json()["pageTitle"] == "Inline"
    assert r.json()["fileTypeSource"] == "exif"


def test_ingest_from_http_url_ignores_response_content_type(client, auth_header, make_image, monkeypatch):
    from imgvault.infrastructure.api.routes import image_routes
    from imgvault.infrastructure.web.image_fetcher import FetchedImage

    fetched = FetchedImage(data=make_image(6), content_type="image/jpeg")
    monkeypatch.setattr(image_routes, "fetch_image", lambda url, timeout: fetched)
    r = client.post("/images/from-url", headers=auth_header, json={"imageUrl": "https://cdn.example/cat.png"})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["sourceImageUrl"] == "https://cdn.example/cat.png"
    assert (body["fileType"], body["fileTypeSource"]) == ("image/png", "exif")


def test_update_and_search(client, auth_header, make_image):
    record = _ingest(client, auth_header, make_image(5)).json()

    r = client.patch(f"/images/{record['id']}", headers=auth_header, json={"description": "Golden sunset"})
    assert r.status_code == 200
    assert r.json()["description"] == "Golden sunset"

    r2 = client.patch(f"/images/{record['id']}", headers=auth_header, json={"sha256": "forged"})
    assert r2.status_code == 422

    hits = client.get("/images/search", headers=auth_header, params={"q": "sunset"}).json()
    assert [i["id"] for i in hits["images"]] == [record["id"]]


def test_trash_lifecycle(client, auth_header, make_image):
    record = _ingest(client, auth_header, make_image(6)).json()

    r = client.delete(f"/images/{record['id']}", headers=auth_header)
    assert r.status_code == 200
    trash_id = r.json()["id"]
    assert client.get(f"/images/{record['id']}", headers=auth_header).status_code == 404

    # a trashed image is still a duplicate
    dup = _ingest(client, auth_header, make_image(6))
    assert dup.status_code == 409
    assert dup.json()["inTrash"] is True

    restored = client.post(f"/trash/{trash_id}/restore", headers=auth_header)
    assert restored.status_code == 200
    assert restored.json() == record

    trash_id = client.delete(f"/images/{record['id']}", headers=auth_header).json()["id"]
    r = client.delete(f"/trash/{trash_id}", headers=auth_header)
    assert r.status_code == 200, r.text
    assert client.get(f"/trash/{trash_id}", headers=auth_header).status_code == 404


def test_empty_trash(client, auth_header, make_image):
    for seed in (7, 8):
        rid = _ingest(client, auth_header, make_image(seed)).json()["id"]
        client.delete(f"/images/{rid}", headers=auth_header)
    assert client.get("/trash", headers=auth_header).json()["total"] == 2

    r = client.delete("/trash", headers=auth_header)
    assert r.status_code == 200
    assert r.json() == {"deletedCount": 2, "errors": []}
    assert client.get("/trash", headers=auth_header).json()["total"] == 0


def test_collections(client, auth_header, make_image):
    r = client.post("/collections", headers=auth_header, json={"name": "Wallpapers"})
    assert r.status_code == 201
    col = r.json()

    record = _ingest(client, auth_header, make_image(9), collection_id=col["id"]).json()
    assert record["collectionId"] == col["id"]
    listing = client.get("/images", headers=auth_header, params={"collection_id": col["id"]}).json()
    assert listing["total"] == 1

    assert client.delete(f"/collections/{col['id']}", headers=auth_header).status_code == 200
    assert client.get(f"/collections/{col['id']}", headers=auth_header).status_code == 404
    assert client.get(f"/images/{record['id']}", headers=auth_header).json()["collectionId"] == col["id"]


def test_missing_ids_return_404(client, auth_header):
    assert client.get("/images/nope", headers=auth_header).status_code == 404
    assert client.post("/trash/nope/restore", headers=auth_header).status_code == 404
    assert client.delete("/trash/nope", headers=auth_header).status_code == 404
