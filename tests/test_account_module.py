def test_account_requires_login(client, seed):
    assert client.get("/api/account/profile").status_code == 401
    assert client.get("/api/account/notifications").status_code == 401


# ACC-001: update profile settings
def test_update_profile(customer_client):
    r = customer_client.patch(
        "/api/account/profile",
        json={"full_name": "Renamed", "phone": "+256711111111", "country": "Kenya", "currency": "USD"},
    )
    assert r.status_code == 200
    assert r.json["full_name"] == "Renamed"
    assert r.json["country"] == "Kenya"
    assert r.json["currency"] == "USD"

    me = customer_client.get("/api/users/me").json
    assert me["phone"] == "+256711111111"


def test_update_profile_validation(customer_client):
    assert customer_client.patch("/api/account/profile", json={"currency": "EUR"}).status_code == 400
    assert customer_client.patch("/api/account/profile", json={"country": "  "}).status_code == 400


# ACC-002: notification preferences
def test_notification_preferences_round_trip(customer_client):
    prefs = customer_client.get("/api/account/notifications").json
    assert prefs["email_notifications"] is True

    r = customer_client.put(
        "/api/account/notifications",
        json={"email_notifications": False, "sms_notifications": True, "order_updates": True, "promotions": False},
    )
    assert r.status_code == 200
    prefs = customer_client.get("/api/account/notifications").json
    assert prefs["email_notifications"] is False
    assert prefs["promotions"] is False


def test_notification_preferences_require_booleans(customer_client):
    r = customer_client.put(
        "/api/account/notifications",
        json={"email_notifications": "no", "sms_notifications": True, "order_updates": True, "promotions": True},
    )
    assert r.status_code == 400
