"""
Admin CRUD tests: validation, discount policy, image replacement cleanup and
hard/soft delete behavior.
"""
from botocore.exceptions import ClientError

from storefront_cms.models import HeroBanner
from storefront_cms.tests.conftest import asset_url

HERO_KEY = "hero/2025/01/01/0f8fad5b-banner.png"
NEW_HERO_KEY = "hero/2025/02/01/7c9e6679-banner.png"


def create_hero(client, **overrides):
    body = {"title": "Summer sale", "imageUrl": asset_url(HERO_KEY), "sortOrder": 1}
    body.update(overrides)
    response = client.post("/admin/hero-banners", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def create_offer(client, route, **overrides):
    body = {
        "productName": "Gaming Laptop",
        "imageUrl": asset_url(f"{route}/2025/01/01/offer.png"),
        "priceCents": 10000,
        "discountedCents": 9000,
    }
    body.update(overrides)
    response = client.post(f"/admin/{route}", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHeroBanners:
    def test_create_and_get(self, client):
        hero = create_hero(client, ctaText="Shop now", ctaLink="/sale", validFrom="2025-01-01")

        assert hero["title"] == "Summer sale"
        assert hero["status"] == "ACTIVE"
        assert hero["validFrom"] == "2025-01-01T00:00:00Z"

        response = client.get(f"/admin/hero-banners/{hero['id']}")
        assert response.status_code == 200
        assert response.json()["ctaText"] == "Shop now"

    def test_create_requires_https_image(self, client):
        response = client.post("/admin/hero-banners", json={"title": "x", "imageUrl": "http://cdn.example.com/a.png"})

        assert response.status_code == 400
        body = response.json()["error"]
        assert body["code"] == "VALIDATION_ERROR"
        assert any("imageUrl" in detail["path"] for detail in body["details"])

    def test_create_requires_image(self, client):
        response = client.post("/admin/hero-banners", json={"title": "x"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_inverted_window_rejected(self, client):
        response = client.post(
            "/admin/hero-banners",
            json={"title": "x", "imageUrl": asset_url(HERO_KEY), "validFrom": "2025-02-01", "validTo": "2025-01-01"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["path"] == "validFrom"

    def test_not_found(self, client):
        assert client.get("/admin/hero-banners/missing").status_code == 404
        assert client.patch("/admin/hero-banners/missing", json={"title": "x"}).status_code == 404
        response = client.delete("/admin/hero-banners/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestImageReplacement:
    def test_replacing_image_deletes_old_object_once(self, client, s3_client):
        hero = create_hero(client)

        response = client.patch(f"/admin/hero-banners/{hero['id']}", json={"imageUrl": asset_url(NEW_HERO_KEY)})

        assert response.status_code == 200
        assert response.json()["imageUrl"] == asset_url(NEW_HERO_KEY)
        s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key=HERO_KEY)

    def test_new_url_is_stored_before_old_object_delete(self, client, s3_client, db_session):
        hero = create_hero(client)
        stored_at_delete = []
        s3_client.delete_object.side_effect = lambda **kwargs: stored_at_delete.append(
            db_session.query(HeroBanner.image_url).filter(HeroBanner.id == hero["id"]).scalar()
        )

        client.patch(f"/admin/hero-banners/{hero['id']}", json={"imageUrl": asset_url(NEW_HERO_KEY)})

        assert stored_at_delete == [asset_url(NEW_HERO_KEY)]

    def test_cleanup_failure_does_not_fail_update(self, client, s3_client):
        hero = create_hero(client)
        s3_client.delete_object.side_effect = RuntimeError("AccessDenied")

        response = client.patch(f"/admin/hero-banners/{hero['id']}", json={"imageUrl": asset_url(NEW_HERO_KEY)})

        assert response.status_code == 200
        assert client.get(f"/admin/hero-banners/{hero['id']}").json()["imageUrl"] == asset_url(NEW_HERO_KEY)

    def test_unchanged_image_is_left_alone(self, client, s3_client):
        hero = create_hero(client)

        client.patch(f"/admin/hero-banners/{hero['id']}", json={"imageUrl": asset_url(HERO_KEY)})
        client.patch(f"/admin/hero-banners/{hero['id']}", json={"title": "Winter sale"})

        s3_client.delete_object.assert_not_called()

    def test_shared_image_is_kept(self, client, s3_client):
        first = create_hero(client)
        create_offer(client, "special-offers", imageUrl=asset_url(HERO_KEY))

        response = client.patch(f"/admin/hero-banners/{first['id']}", json={"imageUrl": asset_url(NEW_HERO_KEY)})

        assert response.status_code == 200
        s3_client.delete_object.assert_not_called()

    def test_offer_image_replacement_is_cleaned_up(self, client, s3_client):
        offer = create_offer(client, "laptop-offers")

        client.patch(f"/admin/laptop-offers/{offer['id']}", json={"imageUrl": asset_url("laptop/new.png")})

        s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="laptop-offers/2025/01/01/offer.png")

    def test_empty_or_null_image_rejected(self, client, s3_client):
        hero = create_hero(client)

        for value in ("", None):
            response = client.patch(f"/admin/hero-banners/{hero['id']}", json={"imageUrl": value})
            assert response.status_code == 400
        s3_client.delete_object.assert_not_called()

    def test_null_status_rejected(self, client):
        hero = create_hero(client)

        response = client.patch(f"/admin/hero-banners/{hero['id']}", json={"status": None})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["path"] == "status"


class TestHardDelete:
    def test_hero_delete_removes_row_and_object(self, client, s3_client):
        hero = create_hero(client)

        response = client.delete(f"/admin/hero-banners/{hero['id']}")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "id": hero["id"], "s3Deleted": True, "s3DeleteError": None}
        s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key=HERO_KEY)
        assert client.get(f"/admin/hero-banners/{hero['id']}").status_code == 404

    def test_row_is_gone_before_object_delete(self, client, s3_client, db_session):
        hero = create_hero(client)
        rows_at_delete = []
        s3_client.delete_object.side_effect = lambda **kwargs: rows_at_delete.append(db_session.query(HeroBanner).count())

        response = client.delete(f"/admin/hero-banners/{hero['id']}")

        assert response.status_code == 200
        assert rows_at_delete == [0]

    def test_store_failure_is_advisory(self, client, s3_client, db_session):
        hero = create_hero(client)
        s3_client.delete_object.side_effect = RuntimeError("AccessDenied")

        response = client.delete(f"/admin/hero-banners/{hero['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["s3Deleted"] is False
        assert body["s3DeleteError"] == "AccessDenied"
        assert s3_client.delete_object.call_count == 3
        assert db_session.query(HeroBanner).count() == 0

    def test_missing_object_counts_as_deleted(self, client, s3_client):
        hero = create_hero(client)
        s3_client.delete_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "DeleteObject")

        body = client.delete(f"/admin/hero-banners/{hero['id']}").json()

        assert body["s3Deleted"] is True
        assert body["s3DeleteError"] is None

    def test_unparsable_url_skips_store(self, client, s3_client):
        hero = create_hero(client, imageUrl="https://other.example.org/banner.png")

        body = client.delete(f"/admin/hero-banners/{hero['id']}").json()

        assert body["ok"] is True
        assert body["s3Deleted"] is False
        assert body["s3DeleteError"] == "unparsable_or_missing_key"
        s3_client.delete_object.assert_not_called()

    def test_shared_image_survives_delete(self, client, s3_client):
        hero = create_hero(client)
        create_hero(client, title="Other")

        body = client.delete(f"/admin/hero-banners/{hero['id']}").json()

        assert body["s3Deleted"] is False
        assert body["s3DeleteError"] == "in_use"
        s3_client.delete_object.assert_not_called()

    def test_storage_not_configured(self, no_storage):
        hero = create_hero(no_storage)

        body = no_storage.delete(f"/admin/hero-banners/{hero['id']}").json()

        assert body["ok"] is True
        assert body["s3Deleted"] is False
        assert body["s3DeleteError"] == "storage_not_configured"

    def test_laptop_delete_is_hard(self, client, s3_client):
        offer = create_offer(client, "laptop-offers", specs={"cpu": "M3", "ramGb": 16})
        assert offer["specs"] == {"cpu": "M3", "ramGb": 16}

        body = client.delete(f"/admin/laptop-offers/{offer['id']}").json()

        assert body["s3Deleted"] is True
        assert client.get(f"/admin/laptop-offers/{offer['id']}").status_code == 404


class TestSpecialOffers:
    def test_discount_is_derived(self, client):
        offer = create_offer(client, "special-offers", priceCents=10000, discountedCents=4900)

        assert offer["discountPercent"] == 51

    def test_discount_tolerance_on_create(self, client):
        body = {
            "name": "Phone",
            "imageUrl": asset_url("special/a.png"),
            "price": 10000,
            "discounted": 4900,
        }

        rejected = client.post("/admin/special-offers", json={**body, "discountPercent": 53})
        accepted = client.post("/admin/special-offers", json={**body, "discountPercent": 52})

        assert rejected.status_code == 400
        assert rejected.json()["error"]["code"] == "VALIDATION_ERROR"
        assert accepted.status_code == 201
        assert accepted.json()["discountPercent"] == 51

    def test_discounted_above_price_rejected(self, client):
        response = client.post(
            "/admin/special-offers",
            json={"productName": "x", "imageUrl": asset_url("special/a.png"), "priceCents": 100, "discountedCents": 200},
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["path"] == "discountedCents"

    def test_discount_tolerance_on_update(self, client):
        offer = create_offer(client, "special-offers")
        assert offer["discountPercent"] == 10

        too_far = client.patch(f"/admin/special-offers/{offer['id']}", json={"discountPercent": 8})
        close_enough = client.patch(f"/admin/special-offers/{offer['id']}", json={"discountPercent": 9})

        assert too_far.status_code == 400
        assert too_far.json()["error"]["code"] == "VALIDATION_ERROR"
        assert close_enough.status_code == 200
        assert close_enough.json()["discountPercent"] == 10

    def test_price_update_recomputes_discount(self, client):
        offer = create_offer(client, "special-offers")

        response = client.patch(f"/admin/special-offers/{offer['id']}", json={"discountedCents": 7500})

        assert response.json()["discountPercent"] == 25

    def test_update_cannot_invert_prices(self, client):
        offer = create_offer(client, "special-offers")

        response = client.patch(f"/admin/special-offers/{offer['id']}", json={"priceCents": 5000})

        assert response.status_code == 400
        assert client.get(f"/admin/special-offers/{offer['id']}").json()["priceCents"] == 10000

    def test_delete_is_soft(self, client, s3_client):
        offer = create_offer(client, "special-offers")

        response = client.delete(f"/admin/special-offers/{offer['id']}")

        assert response.status_code == 200
        assert response.json()["status"] == "INACTIVE"
        assert client.get(f"/admin/special-offers/{offer['id']}").json()["status"] == "INACTIVE"
        s3_client.delete_object.assert_not_called()


class TestListing:
    def test_filters_and_order(self, client):
        create_hero(client, title="Summer sale", sortOrder=2)
        create_hero(client, title="Spring SALE", sortOrder=0)
        create_hero(client, title="Clearance", sortOrder=1, status="INACTIVE")

        everything = client.get("/admin/hero-banners").json()
        assert everything["total"] == 3
        assert [item["sortOrder"] for item in everything["items"]] == [0, 1, 2]

        searched = client.get("/admin/hero-banners", params={"q": "sale"}).json()
        assert {item["title"] for item in searched["items"]} == {"Summer sale", "Spring SALE"}

        inactive = client.get("/admin/hero-banners", params={"status": "INACTIVE"}).json()
        assert [item["title"] for item in inactive["items"]] == ["Clearance"]

    def test_search_treats_wildcards_literally(self, client):
        create_hero(client, title="Summer sale")
        create_hero(client, title="50% off")

        underscore = client.get("/admin/hero-banners", params={"q": "_"}).json()
        percent = client.get("/admin/hero-banners", params={"q": "%"}).json()

        assert underscore["total"] == 0
        assert [item["title"] for item in percent["items"]] == ["50% off"]

    def test_active_now(self, client):
        create_hero(client, title="Current")
        create_hero(client, title="Expired", validFrom="2020-01-01", validTo="2020-01-31")

        current = client.get("/admin/hero-banners", params={"activeNow": "true"}).json()
        outside = client.get("/admin/hero-banners", params={"activeNow": "false"}).json()

        assert [item["title"] for item in current["items"]] == ["Current"]
        assert [item["title"] for item in outside["items"]] == ["Expired"]

    def test_limit_clamping(self, client):
        create_hero(client)

        assert client.get("/admin/hero-banners", params={"limit": 0}).json()["limit"] == 20
        assert client.get("/admin/hero-banners", params={"limit": 500}).json()["limit"] == 100
        assert client.get("/admin/hero-banners", params={"limit": "abc"}).json()["limit"] == 20
        assert client.get("/admin/hero-banners", params={"offset": -5}).json()["offset"] == 0

    def test_page_style_paging(self, client):
        for order in range(3):
            create_hero(client, sortOrder=order)

        body = client.get("/admin/hero-banners", params={"page": 2, "pageSize": 1}).json()

        assert body["page"] == 2
        assert body["pageSize"] == 1
        assert body["offset"] == 1
        assert [item["sortOrder"] for item in body["items"]] == [1]

    def test_invalid_status_filter(self, client):
        response = client.get("/admin/hero-banners", params={"status": "ARCHIVED"})

        assert response.status_code == 400


def test_half_price_tolerance(client):
    body = {"productName": "Monitor", "imageUrl": asset_url("special/m.png"), "priceCents": 10000, "discountedCents": 5000}

    assert client.post("/admin/special-offers", json={**body, "discountPercent": 53}).status_code == 400
    assert client.post("/admin/special-offers", json={**body, "discountPercent": 51}).status_code == 201


def test_admin_errors_are_documented(client):
    schema = client.get("/openapi.json").json()

    assert "ErrorResponse" in schema["components"]["schemas"]
    responses = schema["paths"]["/admin/hero-banners/{record_id}"]["delete"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/ErrorResponse"}
