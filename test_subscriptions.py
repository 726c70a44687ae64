# test_subscriptions.py
from datetime import datetime, timedelta, timezone

from app.models.subscription import click_rate, engagement_rate, subscription_duration
from conftest import ADMIN_HEADERS, USER_HEADERS


async def test_subscribe_new_email(client, subscriptions_repo):
    response = await client.post(
        "/api/email/subscribe",
        json={"email": "New.Reader@Acme.io", "preferences": {"promotions": False}},
        headers={"User-Agent": "pytest", "Referer": "https://acme.io/blog"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "new.reader@acme.io"
    assert body["data"]["status"] == "active"

    stored = subscriptions_repo.by_email("new.reader@acme.io")
    assert stored["source"] == "website-footer"
    assert stored["is_verified"] is True
    assert stored["preferences"] == {
        "newsletters": True, "promotions": False, "updates": True, "events": True
    }
    assert stored["metadata"]["user_agent"] == "pytest"
    assert stored["metadata"]["referrer"] == "https://acme.io/blog"


async def test_subscribe_active_email_conflicts(client, subscriptions_repo):
    subscriptions_repo.add(email="reader@acme.io", source="manual")

    response = await client.post("/api/email/subscribe", json={"email": "reader@acme.io"})

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "This email is already subscribed to our newsletter",
    }
    stored = subscriptions_repo.by_email("reader@acme.io")
    assert stored["source"] == "manual"
    assert len(subscriptions_repo.rows) == 1


async def test_resubscribe_reactivates_and_keeps_preferences(client, subscriptions_repo):
    old_date = datetime.now(timezone.utc) - timedelta(days=40)
    subscriptions_repo.add(
        email="back@acme.io",
        status="unsubscribed",
        subscription_date=old_date,
        unsubscription_date=old_date + timedelta(days=5),
        unsubscription_reason="Too many emails",
        preferences={"newsletters": True, "promotions": False, "updates": False, "events": True},
        metadata={"country": "NZ"},
    )

    response = await client.post(
        "/api/email/subscribe",
        json={"email": "back@acme.io", "source": "website-popup", "preferences": {"updates": True}},
    )

    assert response.status_code == 200
    assert response.json()["message"].startswith("Welcome back")

    stored = subscriptions_repo.by_email("back@acme.io")
    assert stored["status"] == "active"
    assert stored["source"] == "website-popup"
    assert stored["subscription_date"] > old_date
    assert stored["unsubscription_date"] is None
    assert stored["unsubscription_reason"] is None
    assert stored["preferences"] == {
        "newsletters": True, "promotions": False, "updates": True, "events": True
    }
    assert stored["metadata"]["country"] == "NZ"
    assert len(subscriptions_repo.rows) == 1


async def test_bounced_subscription_can_resubscribe(client, subscriptions_repo):
    subscriptions_repo.add(email="bounce@acme.io", status="bounced")

    response = await client.post("/api/email/subscribe", json={"email": "bounce@acme.io"})

    assert response.status_code == 200
    assert subscriptions_repo.by_email("bounce@acme.io")["status"] == "active"


async def test_subscribe_rejects_invalid_email(client):
    response = await client.post("/api/email/subscribe", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "email"


async def test_subscribe_is_rate_limited(client, rate_limiter):
    rate_limiter.allowed = False

    response = await client.post("/api/email/subscribe", json={"email": "reader@acme.io"})

    assert response.status_code == 429
    assert rate_limiter.calls[0]["endpoint"] == "email-subscribe"


async def test_unsubscribe(client, subscriptions_repo):
    subscriptions_repo.add(email="leaving@acme.io")

    response = await client.post("/api/email/unsubscribe", json={"email": "Leaving@acme.io"})

    assert response.status_code == 200
    stored = subscriptions_repo.by_email("leaving@acme.io")
    assert stored["status"] == "unsubscribed"
    assert stored["unsubscription_date"] is not None
    assert stored["unsubscription_reason"] == "User requested"


async def test_unsubscribe_records_reason(client, subscriptions_repo):
    subscriptions_repo.add(email="leaving@acme.io")

    await client.post(
        "/api/email/unsubscribe", json={"email": "leaving@acme.io", "reason": "Not relevant"}
    )

    assert subscriptions_repo.by_email("leaving@acme.io")["unsubscription_reason"] == "Not relevant"


async def test_unsubscribe_unknown_email(client):
    response = await client.post("/api/email/unsubscribe", json={"email": "ghost@acme.io"})

    assert response.status_code == 404
    assert response.json()["message"] == "Email not found in our subscription list"


async def test_unsubscribe_twice(client, subscriptions_repo):
    subscriptions_repo.add(email="gone@acme.io")
    await client.post("/api/email/unsubscribe", json={"email": "gone@acme.io"})

    response = await client.post("/api/email/unsubscribe", json={"email": "gone@acme.io"})

    assert response.status_code == 400
    assert response.json()["message"] == "This email is already unsubscribed"


async def test_list_requires_admin(client):
    assert (await client.get("/api/email/subscriptions")).status_code == 401
    assert (await client.get("/api/email/subscriptions", headers=USER_HEADERS)).status_code == 403


async def test_list_paginates_newest_first(client, subscriptions_repo):
    start = datetime.now(timezone.utc) - timedelta(days=30)
    for i in range(25):
        subscriptions_repo.add(email=f"reader{i}@acme.io", subscription_date=start + timedelta(hours=i))

    response = await client.get(
        "/api/email/subscriptions", params={"page": 3, "limit": 10}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {
        "currentPage": 3, "totalPages": 3, "totalCount": 25, "pageSize": 10
    }
    assert [item["email"] for item in body["data"]] == [f"reader{i}@acme.io" for i in range(4, -1, -1)]


async def test_list_empty_page(client):
    response = await client.get("/api/email/subscriptions", headers=ADMIN_HEADERS)

    assert response.json()["data"] == []
    assert response.json()["pagination"]["totalPages"] == 0


async def test_list_filters_and_search(client, subscriptions_repo):
    subscriptions_repo.add(email="anna@acme.io", status="active")
    subscriptions_repo.add(email="anna_b@acme.io", status="unsubscribed", unsubscription_date=datetime.now(timezone.utc))
    subscriptions_repo.add(email="bob@acme.io", status="active")

    response = await client.get(
        "/api/email/subscriptions", params={"status": "active", "search": "ANNA"}, headers=ADMIN_HEADERS
    )

    assert [item["email"] for item in response.json()["data"]] == ["anna@acme.io"]


async def test_list_rejects_oversized_page(client):
    response = await client.get("/api/email/subscriptions", params={"limit": 101}, headers=ADMIN_HEADERS)

    assert response.status_code == 400


async def test_subscription_response_has_engagement_fields(client, subscriptions_repo):
    row = subscriptions_repo.add(
        email="engaged@acme.io", emails_sent=3, emails_opened=2, emails_clicked=1,
        subscription_date=datetime.now(timezone.utc) - timedelta(days=10, hours=1),
    )

    response = await client.get(f"/api/email/subscription/{row['id']}", headers=ADMIN_HEADERS)

    data = response.json()["data"]
    assert data["engagementRate"] == 67
    assert data["clickRate"] == 50
    assert data["subscriptionDuration"] == 10
    assert data["isVerified"] is True
    assert data["preferences"]["newsletters"] is True


async def test_get_unknown_subscription(client):
    response = await client.get(
        "/api/email/subscription/00000000-0000-0000-0000-000000000000", headers=ADMIN_HEADERS
    )

    assert response.status_code == 404


async def test_admin_update_merges_preferences_and_replaces_tags(client, subscriptions_repo):
    row = subscriptions_repo.add(email="tagged@acme.io", tags=["old"])

    response = await client.put(
        f"/api/email/subscription/{row['id']}",
        json={"preferences": {"events": False}, "tags": [" vip ", "beta"]},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tags"] == ["vip", "beta"]
    assert data["preferences"] == {
        "newsletters": True, "promotions": True, "updates": True, "events": False
    }


async def test_admin_update_to_unsubscribed_sets_date(client, subscriptions_repo):
    row = subscriptions_repo.add(email="manual@acme.io")

    response = await client.put(
        f"/api/email/subscription/{row['id']}", json={"status": "unsubscribed"}, headers=ADMIN_HEADERS
    )

    assert response.json()["data"]["unsubscriptionDate"] is not None


async def test_admin_delete(client, subscriptions_repo):
    row = subscriptions_repo.add(email="delete@acme.io")

    first = await client.delete(f"/api/email/subscription/{row['id']}", headers=ADMIN_HEADERS)
    second = await client.delete(f"/api/email/subscription/{row['id']}", headers=ADMIN_HEADERS)

    assert first.status_code == 200
    assert second.status_code == 404
    assert subscriptions_repo.rows == []


async def test_email_stats(client, subscriptions_repo):
    now = datetime.now(timezone.utc)
    subscriptions_repo.add(email="a@acme.io", emails_sent=10, emails_opened=5, emails_clicked=1)
    subscriptions_repo.add(email="b@acme.io", emails_sent=4, emails_opened=1, source="manual")
    subscriptions_repo.add(
        email="c@acme.io", status="unsubscribed", unsubscription_date=now,
        emails_sent=100, emails_opened=100, subscription_date=now - timedelta(days=400),
    )

    response = await client.get("/api/email/stats", headers=ADMIN_HEADERS)

    data = response.json()["data"]
    assert data["total"] == 3
    assert data["active"] == 2
    assert data["thisWeek"] == 2
    assert data["byStatus"] == {"active": 2, "unsubscribed": 1}
    assert sum(data["bySource"].values()) == data["total"]
    assert data["engagement"] == {
        "totalEmailsSent": 14,
        "totalEmailsOpened": 6,
        "totalEmailsClicked": 1,
        "avgEngagementRate": 37.5,
    }


def test_rates_round_half_up():
    assert engagement_rate(0, 0) == 0
    assert engagement_rate(8, 1) == 13
    assert engagement_rate(3, 2) == 67
    assert click_rate(0, 5) == 0
    assert click_rate(200, 1) == 1
    assert click_rate(4, 1) == 25


def test_subscription_duration_stops_at_unsubscription():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    assert subscription_duration(start, start + timedelta(days=3, hours=23)) == 3
    assert subscription_duration(start, now=start + timedelta(days=31)) == 31


def test_engagement_rate_of_fifty_sent_ten_opened():
    assert engagement_rate(50, 10) == 20


async def test_page_beyond_range_is_empty(client, subscriptions_repo):
    for i in range(3):
        subscriptions_repo.add(email=f"reader{i}@acme.io")

    response = await client.get("/api/email/subscriptions", params={"page": 9}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["totalCount"] == 3


async def test_admin_update_rejects_bad_tags(client, subscriptions_repo):
    row = subscriptions_repo.add(email="tagged@acme.io", tags=["old"])

    for tags in (["x" * 51], ["   "]):
        response = await client.put(
            f"/api/email/subscription/{row['id']}", json={"tags": tags}, headers=ADMIN_HEADERS
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "tags"
    assert subscriptions_repo.by_email("tagged@acme.io")["tags"] == ["old"]


async def test_unsubscribe_reason_is_capped(client, subscriptions_repo):
    subscriptions_repo.add(email="leaving@acme.io")

    response = await client.post(
        "/api/email/unsubscribe", json={"email": "leaving@acme.io", "reason": "x" * 201}
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "reason"
    assert subscriptions_repo.by_email("leaving@acme.io")["status"] == "active"


async def test_huge_page_number_returns_empty_page(client, subscriptions_repo):
    subscriptions_repo.add(email="reader@acme.io")

    response = await client.get(
        "/api/email/subscriptions", params={"page": 10 ** 20}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 200
    assert response.json()["data"] == []
