def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["checks"] == {"database": True, "anthropic_configured": True}


def test_unknown_route_uses_error_shape(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


def test_request_id_header(client):
    assert client.get("/").headers["X-Request-ID"]
