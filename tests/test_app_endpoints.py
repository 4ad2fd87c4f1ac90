from ecofinds.auth.session import TokenService


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_example_scenario(client, make_user):
    r = client.post("/api/auth/signup", json={"email": "a@x.com", "username": "ana", "password": "secret1"})
    assert r.status_code == 201

    r = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert r.status_code == 200
    body = r.json()
    user = body["user"]
    assert user["email"] == "a@x.com"
    assert user["username"] == "ana"
    ana = {"Authorization": f"Bearer {body['token']}"}

    r = client.get("/api/my/listings", headers=ana)
    assert r.status_code == 200
    assert r.json() == {"items": []}

    r = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 12.5})
    assert r.status_code == 201
    lamp = r.json()
    assert lamp["owner_id"] == user["id"]
    assert lamp["price"] == 12.5

    _, bob = make_user("b@x.com", "bob")
    r = client.delete(f"/api/products/{lamp['id']}", headers=bob)
    assert r.status_code == 404
    assert "error" in r.json()

    r = client.get(f"/api/products/{lamp['id']}", headers=ana)
    assert r.status_code == 200
    assert r.json()["title"] == "Lamp"


# ------------------ Signup / login ------------------


def test_signup_then_login_token_subject_matches_user(client, app):
    r = client.post("/api/auth/signup", json={"email": "C@X.com ", "username": "cy", "password": "pw123"})
    assert r.status_code == 201
    created_id = r.json()["id"]

    r = client.post("/api/auth/login", json={"email": "c@x.com", "password": "pw123"})
    assert r.status_code == 200
    token = r.json()["token"]
    assert app.state.tokens.verify(token).user_id == created_id


def test_signup_missing_fields_is_400(client):
    r = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw"})
    assert r.status_code == 400
    assert r.json()["error"]


def test_signup_invalid_email_is_400(client):
    r = client.post("/api/auth/signup", json={"email": "nope", "username": "n", "password": "pw"})
    assert r.status_code == 400


def test_duplicate_email_is_409(client):
    payload = {"email": "a@x.com", "username": "ana", "password": "secret1"}
    assert client.post("/api/auth/signup", json=payload).status_code == 201
    r = client.post("/api/auth/signup", json={**payload, "username": "other"})
    assert r.status_code == 409
    assert r.json() == {"error": "Email already registered."}


def test_bad_password_and_unknown_email_look_the_same(client, make_user):
    make_user("a@x.com", "ana")
    wrong = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "ghost@x.com", "password": "nope"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_login_missing_fields_is_400(client):
    r = client.post("/api/auth/login", json={"email": "a@x.com"})
    assert r.status_code == 400


def test_password_hash_never_in_responses(client, make_user):
    user, headers = make_user("a@x.com", "ana", "secret1")
    bodies = [
        client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"}).text,
        client.get("/api/users/me", headers=headers).text,
        client.put("/api/users/me", headers=headers, json={"username": "ana2"}).text,
        client.get(f"/api/users/{user['id']}", headers=headers).text,
    ]
    for text in bodies:
        assert "password" not in text
        assert "$argon2" not in text
        assert "secret1" not in text


# ------------------ Auth gate ------------------


def test_protected_routes_require_token(client):
    for method, path in [
        ("get", "/api/users/me"),
        ("get", "/api/products"),
        ("post", "/api/products"),
        ("get", "/api/my/listings"),
        ("get", "/api/cart"),
        ("post", "/api/checkout"),
        ("get", "/api/orders"),
    ]:
        r = getattr(client, method)(path)
        assert r.status_code == 401, path
        assert r.headers["www-authenticate"] == "Bearer"


def test_owned_mutations_need_a_valid_token(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    pid = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 12.5}).json()["id"]
    item_id = client.post("/api/cart", headers=ana, json={"product_id": pid}).json()["id"]

    for headers in ({}, {"Authorization": "Bearer garbage"}):
        for method, path, kwargs in [
            ("put", f"/api/products/{pid}", {"json": {"title": "Stolen"}}),
            ("delete", f"/api/products/{pid}", {}),
            ("delete", f"/api/cart/{item_id}", {}),
        ]:
            r = client.request(method.upper(), path, headers=headers, **kwargs)
            assert r.status_code == 401, (method, path, headers)
            assert r.json() == {"error": "Authentication failed."}

    r = client.get(f"/api/products/{pid}", headers=ana)
    assert r.status_code == 200
    assert r.json()["title"] == "Lamp"
    assert [i["id"] for i in client.get("/api/cart", headers=ana).json()["items"]] == [item_id]


def test_all_token_failures_share_one_response(client, settings, make_user):
    make_user("a@x.com", "ana")
    foreign = TokenService("another-secret").issue(1)
    expired = TokenService(settings.secret_key, salt=settings.token_salt, clock=lambda: 1000.0).issue(1)
    responses = [
        client.get("/api/users/me"),
        client.get("/api/users/me", headers={"Authorization": "Token abc"}),
        client.get("/api/users/me", headers={"Authorization": "Bearer garbage"}),
        client.get("/api/users/me", headers={"Authorization": f"Bearer {foreign}"}),
        client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"}),
    ]
    assert {r.status_code for r in responses} == {401}
    assert len({r.text for r in responses}) == 1


# ------------------ Profiles ------------------


def test_profile_read_and_update(client, make_user):
    user, headers = make_user("a@x.com", "ana")
    r = client.get("/api/users/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]

    r = client.put("/api/users/me", headers=headers, json={"username": "ana b", "email": "new@x.com"})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "ana b"
    assert r.json()["user"]["email"] == "new@x.com"


def test_profile_update_to_taken_email_is_409(client, make_user):
    make_user("a@x.com", "ana")
    _, bob = make_user("b@x.com", "bob")
    r = client.put("/api/users/me", headers=bob, json={"email": "a@x.com"})
    assert r.status_code == 409


def test_other_users_profile_is_forbidden(client, make_user):
    ana, ana_h = make_user("a@x.com", "ana")
    bob, _ = make_user("b@x.com", "bob")

    assert client.get(f"/api/users/{ana['id']}", headers=ana_h).status_code == 200
    r = client.get(f"/api/users/{bob['id']}", headers=ana_h)
    assert r.status_code == 403
    r = client.put(f"/api/users/{bob['id']}", headers=ana_h, json={"username": "pwned"})
    assert r.status_code == 403


# ------------------ Listings ------------------


def test_only_owner_can_update_or_delete_listing(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    _, bob = make_user("b@x.com", "bob")
    pid = client.post("/api/products", headers=ana, json={"title": "Chair", "category": "Home", "price": 30}).json()["id"]

    r = client.put(f"/api/products/{pid}", headers=bob, json={"price": 1})
    assert r.status_code == 404
    # Foreign and missing rows are indistinguishable.
    assert r.json() == client.put("/api/products/999999", headers=bob, json={"price": 1}).json()

    r = client.put(f"/api/products/{pid}", headers=ana, json={"price": 25, "description": "Oak"})
    assert r.status_code == 200
    assert r.json()["price"] == 25
    assert r.json()["description"] == "Oak"

    assert client.delete(f"/api/products/{pid}", headers=ana).status_code == 200
    assert client.get(f"/api/products/{pid}", headers=ana).status_code == 404


def test_owner_id_cannot_be_reassigned(client, make_user):
    ana_user, ana = make_user("a@x.com", "ana")
    bob_user, _ = make_user("b@x.com", "bob")
    pid = client.post("/api/products", headers=ana, json={"title": "Desk", "category": "Home", "price": 5}).json()["id"]
    r = client.put(f"/api/products/{pid}", headers=ana, json={"owner_id": bob_user["id"], "title": "Desk 2"})
    assert r.status_code == 200
    assert r.json()["owner_id"] == ana_user["id"]


def test_listing_validation(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    assert client.post("/api/products", headers=ana, json={"title": "X", "category": "Home", "price": 0}).status_code == 400
    assert client.post("/api/products", headers=ana, json={"title": "X", "category": "Home", "price": -3}).status_code == 400
    assert client.post("/api/products", headers=ana, json={"title": "X", "price": 3}).status_code == 400
    assert client.post("/api/products", headers=ana, json={"title": "X", "category": "Home", "price": "abc"}).status_code == 400
    # Rounds to 0.00 and must not reach the database constraint.
    r = client.post("/api/products", headers=ana, json={"title": "Pin", "category": "Home", "price": 0.001})
    assert r.status_code == 400
    assert r.json() == {"error": "Price must be greater than 0."}
    assert client.get("/api/my/listings", headers=ana).json() == {"items": []}
    r = client.post("/api/products", headers=ana, json={"title": "Pin", "category": "Home", "price": 0.01})
    assert r.status_code == 201
    assert r.json()["price"] == 0.01


def test_search_by_title_and_category(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    for title, cat in [("Red Lamp", "Home"), ("Blue lamp", "Decor"), ("Bike", "Sports")]:
        client.post("/api/products", headers=ana, json={"title": title, "category": cat, "price": 10})

    titles = lambda r: sorted(p["title"] for p in r.json()["items"])
    assert titles(client.get("/api/products", headers=ana, params={"q": "LAMP"})) == ["Blue lamp", "Red Lamp"]
    assert titles(client.get("/api/products", headers=ana, params={"q": "lamp", "category": "Home"})) == ["Red Lamp"]
    assert len(client.get("/api/products", headers=ana, params={"category": "All"}).json()["items"]) == 3


def test_my_listings_only_shows_callers_rows(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    _, bob = make_user("b@x.com", "bob")
    client.post("/api/products", headers=ana, json={"title": "A", "category": "Home", "price": 1})
    client.post("/api/products", headers=bob, json={"title": "B", "category": "Home", "price": 1})
    assert [p["title"] for p in client.get("/api/my/listings", headers=ana).json()["items"]] == ["A"]
    assert [p["title"] for p in client.get("/api/my/listings", headers=bob).json()["items"]] == ["B"]


# ------------------ Cart & orders ------------------


def test_cart_is_owner_scoped(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    _, bob = make_user("b@x.com", "bob")
    pid = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 12.5}).json()["id"]

    r = client.post("/api/cart", headers=bob, json={"product_id": pid})
    assert r.status_code == 201
    item_id = r.json()["id"]
    assert r.json()["quantity"] == 1

    assert client.get("/api/cart", headers=ana).json() == {"items": []}
    assert client.delete(f"/api/cart/{item_id}", headers=ana).status_code == 404
    assert len(client.get("/api/cart", headers=bob).json()["items"]) == 1

    assert client.delete(f"/api/cart/{item_id}", headers=bob).status_code == 200
    assert client.get("/api/cart", headers=bob).json() == {"items": []}


def test_cart_rejects_bad_quantity_and_unknown_product(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    pid = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 2}).json()["id"]
    assert client.post("/api/cart", headers=ana, json={"product_id": pid, "quantity": 0}).status_code == 400
    assert client.post("/api/cart", headers=ana, json={"product_id": 999999}).status_code == 404
    assert client.post("/api/cart", headers=ana, json={}).status_code == 400


def test_checkout_moves_cart_into_orders(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    _, bob = make_user("b@x.com", "bob")
    p1 = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 12.5}).json()["id"]
    p2 = client.post("/api/products", headers=ana, json={"title": "Rug", "category": "Home", "price": 40}).json()["id"]
    client.post("/api/cart", headers=bob, json={"product_id": p1})
    client.post("/api/cart", headers=bob, json={"product_id": p2, "quantity": 2})

    r = client.post("/api/checkout", headers=bob)
    assert r.status_code == 200
    assert r.json()["count"] == 2

    assert client.get("/api/cart", headers=bob).json() == {"items": []}
    orders = client.get("/api/orders", headers=bob).json()["items"]
    assert sorted(o["title"] for o in orders) == ["Lamp", "Rug"]
    assert client.get("/api/orders", headers=ana).json() == {"items": []}


def test_checkout_with_empty_cart_is_400(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    r = client.post("/api/checkout", headers=ana)
    assert r.status_code == 400
    assert r.json() == {"error": "Cart is empty."}


def test_ids_beyond_integer_range_are_client_errors(client, make_user):
    _, ana = make_user("a@x.com", "ana")
    huge = 2**70
    assert client.get(f"/api/products/{huge}", headers=ana).status_code == 400
    assert client.put(f"/api/products/{huge}", headers=ana, json={"title": "X"}).status_code == 400
    assert client.delete(f"/api/products/{huge}", headers=ana).status_code == 400
    assert client.delete(f"/api/cart/{huge}", headers=ana).status_code == 400
    assert client.get(f"/api/users/{huge}", headers=ana).status_code == 400

    r = client.post("/api/cart", headers=ana, json={"product_id": huge})
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found."}

    pid = client.post("/api/products", headers=ana, json={"title": "Lamp", "category": "Home", "price": 2}).json()["id"]
    assert client.post("/api/cart", headers=ana, json={"product_id": pid, "quantity": huge}).status_code == 400
