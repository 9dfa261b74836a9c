def test_health(client):
    assert client.get("/health").json() == {"ok": True}

def test_health_providers(client, crypto_service):
    crypto_service.create_invoice(10, "USD", "ETH")
    body = client.get("/health/providers").json()
    assert body["ok"] is True
    assert [p["name"] for p in body["providers"]] == ["paypal", "stripe", "mastercard", "coinremitter"]
    assert body["invoices"] == 1

def test_health_rate_limit_disabled_in_tests(client):
    body = client.get("/health/rate-limit").json()
    assert body["enabled"] is False
