from fastapi.testclient import TestClient


def test_admin_token_scheme_documented(client: TestClient):
    schema = client.get("/openapi.json").json()

    scheme = schema["components"]["securitySchemes"]["AdminTokenAuth"]
    assert scheme["in"] == "header"
    assert scheme["name"] == "X-Admin-Token"


def test_only_session_protected_operations_require_token(client: TestClient):
    paths = client.get("/openapi.json").json()["paths"]

    assert paths["/v1/admin/session"]["get"]["security"] == [{"AdminTokenAuth": []}]
    assert paths["/v1/admin/logout"]["post"]["security"] == [{"AdminTokenAuth": []}]
    assert "security" not in paths["/v1/admin/login"]["post"]
    assert "security" not in paths["/health"]["get"]


def test_tags_present(client: TestClient):
    tags = {tag["name"] for tag in client.get("/openapi.json").json()["tags"]}

    assert {"Admin", "Health"} <= tags
