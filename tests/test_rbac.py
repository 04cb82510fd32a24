from blockauth import config
from blockauth.auth import create_access_token


def test_missing_token_is_401(client):
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"})
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication required"


def test_malformed_header_is_401(client):
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers={"Authorization": "Token abc"})
    assert r.status_code == 401


def test_garbage_token_is_401(client):
    r = client.post("/api/sales/record", json={"productId": "x", "customer": "y"}, headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"


def test_expired_token_is_401(client, signup):
    user, _ = signup("Carol", "manufacturer")
    token = create_access_token(user["id"], user["email"], "manufacturer", expires_delta=-10)
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "Token expired"


def test_token_signed_with_other_secret_is_401(client, signup):
    user, _ = signup("Carol", "manufacturer")
    previous = config.get_settings()
    config.override(jwt_secret="another-secret")
    try:
        token = create_access_token(user["id"], user["email"], "manufacturer")
    finally:
        config.override(jwt_secret=previous.jwt_secret)
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_for_unknown_user_is_401(client):
    token = create_access_token("0" * 32, "ghost@example.com", "manufacturer")
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_wrong_role_is_403(client, signup):
    _, customer = signup("Dana", "customer")
    _, retailer = signup("Bob", "retailer")
    _, manufacturer = signup("Carol", "manufacturer")

    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers=customer)
    assert r.status_code == 403
    r = client.post("/api/products/register", json={"name": "W", "serialNumber": "SN-1"}, headers=retailer)
    assert r.status_code == 403
    r = client.post("/api/sales/record", json={"productId": "x", "customer": "y"}, headers=manufacturer)
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied"


def test_role_check_runs_before_body_validation(client, signup):
    _, customer = signup("Dana", "customer")
    r = client.post("/api/products/register", json={}, headers=customer)
    assert r.status_code == 403


def test_token_expiry_is_configurable(client, signup):
    import jwt

    previous = config.get_settings().token_expiry_seconds
    config.override(token_expiry_seconds=3600)
    try:
        user, headers = signup("Carol", "manufacturer")
        token = headers["Authorization"].split()[1]
        claims = jwt.decode(token, options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == 3600
        assert claims["sub"] == user["id"]
        assert claims["role"] == "manufacturer"
    finally:
        config.override(token_expiry_seconds=previous)
