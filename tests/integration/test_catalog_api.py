"""Integration tests for category and product endpoints."""

import uuid
from decimal import Decimal

import pytest
from tests.conftest import auth_headers, persist
from tests.factories import CategoryFactory, ProductFactory, SubcategoryFactory

PNG = b"\x89PNG\r\n\x1a\n"


def _product_form(category_id, **overrides) -> dict:
    form = {
        "name": "Linen Shirt",
        "description": "Breathable summer shirt",
        "price": "19.99",
        "stock": "5",
        "category_id": str(category_id),
    }
    form.update(overrides)
    return form


def _images(*names):
    return [("images", (name, PNG, "image/png")) for name in names]


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_crud(client, admin_user):
    headers = auth_headers(admin_user)

    created = await client.post(
        "/api/categories", json={"name": "Clothing"}, headers=headers
    )
    assert created.status_code == 201, created.text
    category_id = created.json()["id"]

    child = await client.post(
        "/api/categories",
        json={"name": "Shirts", "parent_id": category_id},
        headers=headers,
    )
    assert child.json()["parent"]["name"] == "Clothing"

    sub = await client.post(
        f"/api/categories/{category_id}/subcategories",
        json={"name": "Outerwear"},
        headers=headers,
    )
    assert sub.status_code == 201
    assert [s["name"] for s in sub.json()["subcategories"]] == ["Outerwear"]

    renamed = await client.put(
        f"/api/categories/{category_id}",
        json={"name": "Apparel"},
        headers=headers,
    )
    assert renamed.json()["name"] == "Apparel"

    listing = await client.get("/api/categories")
    assert {c["name"] for c in listing.json()} == {"Apparel", "Shirts"}

    deleted = await client.delete(f"/api/categories/{category_id}", headers=headers)
    assert deleted.json()["message"] == "Category deleted successfully"

    orphan = await client.get(f"/api/categories/{child.json()['id']}")
    assert orphan.status_code == 200
    assert orphan.json()["parent_id"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_writes_require_admin(client, shopper):
    no_token = await client.post("/api/categories", json={"name": "Toys"})
    standard = await client.post(
        "/api/categories", json={"name": "Toys"}, headers=auth_headers(shopper)
    )

    assert no_token.status_code == 401
    assert standard.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_duplicate_category_name_conflicts(client, admin_user):
    headers = auth_headers(admin_user)
    await client.post("/api/categories", json={"name": "Books"}, headers=headers)

    response = await client.post("/api/categories", json={"name": "BOOKS"}, headers=headers)

    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_category_is_not_found(client):
    response = await client.get(f"/api/categories/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"detail": "Category not found", "code": "NOT_FOUND"}


# ---------------------------------------------------------------------------
# Product creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_with_images(client, admin_user, session_factory, asset_host):
    category = await persist(session_factory, CategoryFactory.create())

    response = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images("front.png", "back.png"),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert Decimal(data["price"]) == Decimal("19.99")
    assert data["stock"] == 5
    assert data["rating"] == 0.0
    assert data["review_count"] == 0
    assert data["created_by"] == str(admin_user.id)
    assert data["category"]["id"] == str(category.id)
    assert {img["storage_id"] for img in data["images"]} == set(asset_host.stored)
    assert len(data["images"]) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_with_unknown_category(client, admin_user, asset_host):
    response = await client.post(
        "/api/products",
        data=_product_form(uuid.uuid4()),
        files=_images("front.png"),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_REFERENCE"
    assert asset_host.stored == {}
    assert (await client.get("/api/products")).json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_with_foreign_subcategory(client, admin_user, session_factory):
    category, other = await persist(
        session_factory, CategoryFactory.create(), CategoryFactory.create()
    )
    foreign = await persist(session_factory, SubcategoryFactory.create(other.id))

    response = await client.post(
        "/api/products",
        data=_product_form(category.id, subcategory_id=str(foreign.id)),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid subcategory ID"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_failed_upload_leaves_nothing_behind(
    client, admin_user, session_factory, asset_host
):
    category = await persist(session_factory, CategoryFactory.create())
    asset_host.fail_uploads_for = {"broken.png"}

    response = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images("ok.png", "broken.png"),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 502
    assert response.json()["code"] == "UPSTREAM_FAILURE"
    assert asset_host.stored == {}
    assert (await client.get("/api/products")).json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_rejects_bad_form(client, admin_user, session_factory):
    category = await persist(session_factory, CategoryFactory.create())

    response = await client.post(
        "/api/products",
        data=_product_form(category.id, price="-1"),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_FAILED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_too_many_images(client, admin_user, session_factory, asset_host):
    category = await persist(session_factory, CategoryFactory.create())

    response = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images(*[f"{i}.png" for i in range(6)]),
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 422
    assert asset_host.stored == {}


# ---------------------------------------------------------------------------
# Product update / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_product_replaces_images(client, admin_user, session_factory, asset_host):
    category = await persist(session_factory, CategoryFactory.create())
    headers = auth_headers(admin_user)
    created = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images("old.png"),
        headers=headers,
    )
    product_id = created.json()["id"]
    old_storage_id = created.json()["images"][0]["storage_id"]

    response = await client.put(
        f"/api/products/{product_id}",
        data={"price": "24.50"},
        files=_images("new.png"),
        headers=headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert Decimal(data["price"]) == Decimal("24.50")
    assert data["name"] == "Linen Shirt"
    assert [img["storage_id"] for img in data["images"]] != [old_storage_id]
    assert asset_host.deleted == [old_storage_id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_without_images_keeps_them(client, admin_user, session_factory):
    category = await persist(session_factory, CategoryFactory.create())
    headers = auth_headers(admin_user)
    created = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images("keep.png"),
        headers=headers,
    )

    response = await client.put(
        f"/api/products/{created.json()['id']}",
        data={"stock": "0"},
        headers=headers,
    )

    assert response.json()["stock"] == 0
    assert response.json()["images"] == created.json()["images"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_product_removes_assets(client, admin_user, session_factory, asset_host):
    category = await persist(session_factory, CategoryFactory.create())
    headers = auth_headers(admin_user)
    created = await client.post(
        "/api/products",
        data=_product_form(category.id),
        files=_images("a.png", "b.png"),
        headers=headers,
    )
    product_id = created.json()["id"]

    response = await client.delete(f"/api/products/{product_id}", headers=headers)

    assert response.status_code == 200
    assert asset_host.stored == {}
    assert (await client.get(f"/api/products/{product_id}")).status_code == 404


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_browse_products(client, session_factory):
    books, toys = await persist(
        session_factory, CategoryFactory.create(), CategoryFactory.create()
    )
    await persist(
        session_factory,
        ProductFactory.create(books.id, name="Atlas", price=Decimal("30.00")),
        ProductFactory.create(books.id, name="Bible", price=Decimal("10.00")),
        ProductFactory.create(books.id, name="Comic", price=Decimal("5.00")),
        ProductFactory.create(toys.id, name="Kite", price=Decimal("12.00")),
    )

    response = await client.get(
        "/api/products",
        params={"category": str(books.id), "sort": "-price", "page": 2, "limit": 2},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert data["page"] == 2
    assert [p["name"] for p in data["items"]] == ["Comic"]

    searched = await client.get("/api/products", params={"search": "kit"})
    assert [p["name"] for p in searched.json()["items"]] == ["Kite"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_detail_includes_reviews(client, session_factory, shopper):
    category = await persist(session_factory, CategoryFactory.create())
    product = await persist(session_factory, ProductFactory.create(category.id))
    await client.post(
        f"/api/products/{product.id}/reviews",
        json={"rating": 4, "comment": "Nice"},
        headers=auth_headers(shopper),
    )

    response = await client.get(f"/api/products/{product.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["rating"] == 4.0
    assert data["reviews"][0]["author_name"] == shopper.name
