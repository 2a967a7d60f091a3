def test_admin_creates_and_lists_users(client, admin_headers):
    r = client.post(
        "/users",
        json={"username": "bruno", "password": "p1", "name": "Bruno", "role": "funcionario"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["role"] == "funcionario"
    assert "password_hash" not in r.json()

    r = client.get("/users", headers=admin_headers)
    assert {u["username"] for u in r.json()} == {"admin", "bruno"}


def test_duplicate_user(client, admin_headers):
    body = {"username": "dup", "password": "p"}
    assert client.post("/users", json=body, headers=admin_headers).status_code == 200

    r = client.post("/users", json=body, headers=admin_headers)
    assert r.status_code == 409
    assert r.json() == {"detail": {"code": "USERNAME_EXISTS", "message": "Usuário já existe"}}


def test_non_admin_cannot_manage_users(client, staff_headers, operator_headers):
    for headers in (staff_headers, operator_headers):
        r = client.post("/users", json={"username": "x", "password": "p"}, headers=headers)
        assert r.status_code == 403
        assert r.json()["detail"]["code"] == "FORBIDDEN"


def test_update_role_and_password(client, admin_headers, make_user, login_as):
    make_user("ana", "operador")
    users = client.get("/users", headers=admin_headers).json()
    ana_id = next(u["id"] for u in users if u["username"] == "ana")

    r = client.patch(f"/users/{ana_id}", json={"role": "funcionario", "password": "nova"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["role"] == "funcionario"
    login_as("ana", "nova")


def test_self_delete_is_rejected(client, admin_headers):
    me = client.get("/auth/me", headers=admin_headers).json()
    r = client.delete(f"/users/{me['id']}", headers=admin_headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "SELF_DELETE"


def test_delete_other_user(client, admin_headers, make_user):
    headers = make_user("ana", "operador")
    users = client.get("/users", headers=admin_headers).json()
    ana_id = next(u["id"] for u in users if u["username"] == "ana")

    assert client.delete(f"/users/{ana_id}", headers=admin_headers).json() == {"ok": True}
    # token antigo deixa de valer
    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "USER_NOT_FOUND"

    assert client.delete(f"/users/{ana_id}", headers=admin_headers).status_code == 404
