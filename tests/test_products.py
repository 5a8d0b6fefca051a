import pytest

PRODUCT = {
    "name": "Hammer",
    "description": "Steel claw hammer",
    "price": 25.5,
    "stock": 4,
    "category": "tools",
}


def test_create_product(client, admin_headers):
    response = client.post("/v1/products", json=PRODUCT, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    for key, value in PRODUCT.items():
        assert data[key] == value
    assert data["id"] > 0
    assert data["created_at"]


def test_create_product_requires_login(client):
    response = client.post("/v1/products", json=PRODUCT)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthenticated, login is required"}


def test_create_product_requires_admin(client, customer_headers):
    response = client.post("/v1/products", json=PRODUCT, headers=customer_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized access, only admins can create products"}


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("price", 0, "Value must be greater than 0."),
        ("price", -3.5, "Value must be greater than 0."),
        ("stock", -1, "Value must be greater than or equal to 0."),
    ],
)
def test_create_product_validation(client, admin_headers, field, value, message):
    response = client.post("/v1/products", json={**PRODUCT, field: value}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": {field: message}}


def test_create_product_missing_fields(client, admin_headers):
    response = client.post("/v1/products", json={"name": "Hammer"}, headers=admin_headers)
    assert response.status_code == 400
    errors = response.json()["error"]
    assert set(errors) == {"description", "price", "stock", "category"}
    assert all(message == "This field is required." for message in errors.values())


def test_get_product(client, create_product):
    product = create_product()
    response = client.get(f"/v1/products/{product['id']}")
    assert response.status_code == 200
    assert response.json() == product


def test_get_product_not_found(client):
    response = client.get("/v1/products/999")
    assert response.status_code == 404
    assert response.json() == {"error": "Product not found"}


@pytest.mark.parametrize("raw", ["abc", "0", "-4", "1_0", "99999999999999999999"])
def test_get_product_invalid_id(client, raw):
    response = client.get(f"/v1/products/{raw}")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid product ID"}


def test_list_products_pagination(client, create_product):
    for i in range(12):
        create_product(name=f"Item {i}")

    response = client.get("/v1/products", params={"page": 2, "pageSize": 5})
    assert response.status_code == 200
    data = response.json()
    assert len(data["products"]) == 5
    assert data["page"] == 2
    assert data["page_size"] == 5
    assert data["total_count"] == 12
    assert data["total_pages"] == 3
    assert [p["name"] for p in data["products"]] == [f"Item {i}" for i in range(5, 10)]

    last = client.get("/v1/products", params={"page": 3, "pageSize": 5}).json()
    assert len(last["products"]) == 2


def test_list_products_defaults(client, create_product):
    create_product()
    data = client.get("/v1/products").json()
    assert data["page"] == 1
    assert data["page_size"] == 10
    assert data["total_count"] == 1
    assert data["total_pages"] == 1


@pytest.mark.parametrize(
    "params, message",
    [
        ({"page": "0"}, "Invalid page number"),
        ({"page": "two"}, "Invalid page number"),
        ({"pageSize": "-5"}, "Invalid pageSize number"),
        ({"pageSize": "x"}, "Invalid pageSize number"),
        ({"page": "1_0"}, "Invalid page number"),
        ({"page": "99999999999999999999"}, "Invalid page number"),
        ({"pageSize": "9223372036854775808"}, "Invalid pageSize number"),
    ],
)
def test_list_products_invalid_pagination(client, params, message):
    response = client.get("/v1/products", params=params)
    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_list_products_far_past_the_last_page(client, create_product):
    create_product()
    response = client.get("/v1/products", params={"page": str(2**63 - 1), "pageSize": "10"})
    assert response.status_code == 200
    data = response.json()
    assert data["products"] == []
    assert data["total_count"] == 1


def test_update_product_replaces_fields(client, admin_headers, create_product):
    product = create_product()
    replacement = {**PRODUCT, "name": "Mallet", "price": 9.99}
    response = client.put(f"/v1/products/{product['id']}", json=replacement, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    for key, value in replacement.items():
        assert data[key] == value
    assert client.get(f"/v1/products/{product['id']}").json()["name"] == "Mallet"


def test_update_product_requires_every_field(client, admin_headers, create_product):
    product = create_product()
    response = client.put(f"/v1/products/{product['id']}", json={"name": "Mallet"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["price"] == "This field is required."


def test_update_product_requires_admin(client, customer_headers, create_product):
    product = create_product()
    response = client.put(f"/v1/products/{product['id']}", json=PRODUCT, headers=customer_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized access, only admins can update products"}


def test_update_missing_product(client, admin_headers):
    response = client.put("/v1/products/404", json=PRODUCT, headers=admin_headers)
    assert response.status_code == 404


def test_patch_product_merges_supplied_fields(client, admin_headers, create_product):
    product = create_product(price=10.0, stock=5)
    response = client.patch(f"/v1/products/{product['id']}", json={"stock": 0}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["stock"] == 0
    assert data["price"] == 10.0
    assert data["name"] == product["name"]
    assert data["description"] == product["description"]


def test_patch_product_validates_values(client, admin_headers, create_product):
    product = create_product()
    response = client.patch(f"/v1/products/{product['id']}", json={"price": 0}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": {"price": "Value must be greater than 0."}}


def test_patch_product_requires_admin(client, customer_headers, create_product):
    product = create_product()
    response = client.patch(f"/v1/products/{product['id']}", json={"stock": 1}, headers=customer_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized access, only admins can patch products"}


def test_delete_product(client, admin_headers, create_product):
    product = create_product()
    response = client.delete(f"/v1/products/{product['id']}", headers=admin_headers)
    assert response.status_code == 204
    assert client.get(f"/v1/products/{product['id']}").status_code == 404
    assert client.delete(f"/v1/products/{product['id']}", headers=admin_headers).status_code == 404


def test_delete_product_requires_admin(client, customer_headers, create_product):
    product = create_product()
    response = client.delete(f"/v1/products/{product['id']}", headers=customer_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized access, only admins can delete products"}


def test_delete_ordered_product_is_refused(
    client, admin_headers, customer_headers, create_product, create_address, place_order
):
    product = create_product()
    address = create_address(customer_headers)
    assert place_order(customer_headers, address["id"], [(product["id"], 1)]).status_code == 201

    response = client.delete(f"/v1/products/{product['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert client.get(f"/v1/products/{product['id']}").status_code == 200
