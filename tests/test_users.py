import base64
import uuid
from pathlib import Path

from identity.config import get_settings
from identity.models import RoleEnum

CLIENT_PAYLOAD = {
    "name": "Ana Souza",
    "email": "a@b.com",
    "national_id": "111.222.333-44",
    "password_base64": base64.b64encode(b"secret").decode(),
}


def token_for(client, user: str, password: str) -> str:
    response = client.post(
        "/auth/tokens",
        json={"user": user, "password_base64": base64.b64encode(password.encode()).decode()},
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth_header(client, user: str, password: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(client, user, password)}"}


def test_root_redirects_to_docs(users_client):
    response = users_client.get("/", follow_redirects=False)

    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/docs"


def test_health(users_client):
    assert users_client.get("/health").json() == {"status": "ok", "service": "users"}


def test_metrics_are_exposed(users_client):
    users_client.get("/health")

    response = users_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_client_registration_and_token(users_client, issuer):
    created = users_client.post("/users/clients", json=CLIENT_PAYLOAD)
    assert created.status_code == 201
    body = created.json()
    assert body["role"] == RoleEnum.CLIENT.value
    assert body["national_id"] == "11122233344"
    assert "password_hash" not in body

    response = users_client.post(
        "/auth/tokens", json={"user": "a@b.com", "password_base64": CLIENT_PAYLOAD["password_base64"]}
    )
    assert response.status_code == 200
    token = response.json()
    assert token["token_type"] == "bearer"
    assert token["expires_in"] > 0

    claims = issuer.decode(token["access_token"])
    assert str(claims.user_id) == body["id"]
    assert claims.role == RoleEnum.CLIENT


def test_token_by_national_id(users_client):
    users_client.post("/users/clients", json=CLIENT_PAYLOAD)

    assert token_for(users_client, "111.222.333-44", "secret")


def test_duplicate_registration_conflicts(users_client):
    assert users_client.post("/users/clients", json=CLIENT_PAYLOAD).status_code == 201

    response = users_client.post("/users/clients", json={**CLIENT_PAYLOAD, "email": "A@B.COM"})

    assert response.status_code == 409


def test_registration_validation_lists_every_error(users_client):
    response = users_client.post("/users/clients", json={"email": "broken", "password_base64": "not base64!"})

    assert response.status_code == 400
    fields = [error["field"] for error in response.json()["errors"]]
    assert fields == ["name", "email", "national_id", "password_base64"]


def test_invalid_credentials_are_uniform(users_client):
    users_client.post("/users/clients", json=CLIENT_PAYLOAD)

    wrong_password = users_client.post(
        "/auth/tokens", json={"user": "a@b.com", "password_base64": base64.b64encode(b"nope").decode()}
    )
    unknown_user = users_client.post(
        "/auth/tokens", json={"user": "ghost@b.com", "password_base64": CLIENT_PAYLOAD["password_base64"]}
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_token_request_requires_base64_password(users_client):
    response = users_client.post("/auth/tokens", json={"user": "a@b.com", "password_base64": "secret!"})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "password_base64"


def test_soft_deleted_user_cannot_log_in(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")

    assert users_client.delete(f"/users/{user_id}", headers=headers).status_code == 204

    response = users_client.post(
        "/auth/tokens", json={"user": "a@b.com", "password_base64": CLIENT_PAYLOAD["password_base64"]}
    )
    assert response.status_code == 401


def test_token_of_deleted_user_is_rejected(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")
    users_client.delete(f"/users/{user_id}", headers=headers)

    assert users_client.get(f"/users/{user_id}", headers=headers).status_code == 401


def test_admin_flow(users_client, make_user):
    make_user(email="admin@admin.com", national_id="829.091.170-06", password="admin123", role=RoleEnum.ADMIN)
    headers = auth_header(users_client, "82909117006", "admin123")

    employee = users_client.post(
        "/users/employees",
        json={
            "name": "Bruno Lima",
            "email": "bruno@example.com",
            "national_id": "555.666.777-88",
            "password_base64": base64.b64encode(b"kitchen").decode(),
            "role": "employee",
        },
        headers=headers,
    )
    assert employee.status_code == 201
    employee_id = employee.json()["id"]
    assert employee.json()["role"] == "employee"

    update = users_client.put(
        f"/users/{employee_id}",
        json={
            "name": "Bruno L.",
            "email": "bruno@example.com",
            "national_id": "555.666.777-88",
            "password_base64": base64.b64encode(b"kitchen").decode(),
            "role": "employee",
        },
        headers=headers,
    )
    assert update.status_code == 204

    fetched = users_client.get(f"/users/{employee_id}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Bruno L."

    assert users_client.delete(f"/users/{employee_id}", headers=headers).status_code == 204

    deleted = users_client.get(f"/users/{employee_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["is_available"] is False


def test_update_of_deleted_user_is_accepted_and_ignored(users_client, make_user):
    make_user(email="admin@admin.com", national_id="829.091.170-06", password="admin123", role=RoleEnum.ADMIN)
    headers = auth_header(users_client, "admin@admin.com", "admin123")
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    users_client.delete(f"/users/{user_id}", headers=headers)

    response = users_client.put(f"/users/{user_id}", json={**CLIENT_PAYLOAD, "name": "Ghost", "role": "client"}, headers=headers)

    assert response.status_code == 204
    assert users_client.get(f"/users/{user_id}", headers=headers).json()["name"] == "Ana Souza"


def test_employee_creation_requires_admin(users_client):
    users_client.post("/users/clients", json=CLIENT_PAYLOAD)
    headers = auth_header(users_client, "a@b.com", "secret")

    response = users_client.post("/users/employees", json={**CLIENT_PAYLOAD, "email": "x@y.com"}, headers=headers)

    assert response.status_code == 403


def test_client_cannot_read_other_users(users_client):
    users_client.post("/users/clients", json=CLIENT_PAYLOAD)
    headers = auth_header(users_client, "a@b.com", "secret")

    response = users_client.get(f"/users/{uuid.uuid4()}", headers=headers)

    assert response.status_code == 403


def test_get_unknown_user_as_admin(users_client, make_user):
    make_user(email="admin@admin.com", national_id="829.091.170-06", password="admin123", role=RoleEnum.ADMIN)
    headers = auth_header(users_client, "admin@admin.com", "admin123")

    assert users_client.get(f"/users/{uuid.uuid4()}", headers=headers).status_code == 404
    assert users_client.get("/users/not-a-uuid", headers=headers).status_code == 400


def test_unauthorized_access(users_client):
    response = users_client.get(f"/users/{uuid.uuid4()}")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_client_cannot_change_its_own_role(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")

    response = users_client.put(f"/users/{user_id}", json={**CLIENT_PAYLOAD, "role": "admin"}, headers=headers)

    assert response.status_code == 403
    assert users_client.get(f"/users/{user_id}", headers=headers).json()["role"] == "client"


def test_client_can_update_itself_keeping_its_role(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")

    response = users_client.put(
        f"/users/{user_id}", json={**CLIENT_PAYLOAD, "name": "Ana Lima", "role": "client"}, headers=headers
    )

    assert response.status_code == 204
    fetched = users_client.get(f"/users/{user_id}", headers=headers).json()
    assert fetched["name"] == "Ana Lima"
    assert fetched["role"] == "client"


def test_admin_can_change_roles(users_client, make_user):
    make_user(email="admin@admin.com", national_id="829.091.170-06", password="admin123", role=RoleEnum.ADMIN)
    headers = auth_header(users_client, "admin@admin.com", "admin123")
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]

    response = users_client.put(f"/users/{user_id}", json={**CLIENT_PAYLOAD, "role": "employee"}, headers=headers)

    assert response.status_code == 204
    assert users_client.get(f"/users/{user_id}", headers=headers).json()["role"] == "employee"


def test_own_id_is_accepted_in_any_uuid_form(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")

    for spelling in (uuid.UUID(user_id).hex, "{" + user_id + "}", user_id.upper()):
        response = users_client.get(f"/users/{spelling}", headers=headers)
        assert response.status_code == 200, spelling
        assert response.json()["id"] == user_id


def test_client_with_malformed_id_gets_validation_error(users_client):
    users_client.post("/users/clients", json=CLIENT_PAYLOAD)
    headers = auth_header(users_client, "a@b.com", "secret")

    assert users_client.get("/users/not-a-uuid", headers=headers).status_code == 400


def test_audit_log_records_the_authenticated_subject(users_client):
    user_id = users_client.post("/users/clients", json=CLIENT_PAYLOAD).json()["id"]
    headers = auth_header(users_client, "a@b.com", "secret")

    users_client.get(f"/users/{user_id}", headers=headers)

    lines = (Path(get_settings().log_dir) / "users.log").read_text().splitlines()
    assert any(f"GET /users/{user_id}" in line and f"subject={user_id}" in line for line in lines)
    assert any("POST /users/clients" in line and "subject=anonymous" in line for line in lines)
