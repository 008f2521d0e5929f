"""Notification inbox endpoints."""

from app.services.notification_service import NotificationService


def test_inbox_and_mark_read(db, client, host, client_user, auth_headers_host):
    service = NotificationService(db)
    first = service.notify(host.id, "New Booking Request", "a", booking_id="b1")
    service.notify(client_user.id, "Not for the host", "b")
    db.commit()

    inbox = client.get("/api/v1/notifications", headers=auth_headers_host)

    assert inbox.status_code == 200
    notifications = inbox.json()["notifications"]
    assert [n["id"] for n in notifications] == [first.id]
    assert notifications[0]["is_read"] is False
    assert notifications[0]["booking_id"] == "b1"

    marked = client.post(f"/api/v1/notifications/{first.id}/read", headers=auth_headers_host)
    assert marked.status_code == 200
    assert marked.json()["success"] is True

    again = client.get("/api/v1/notifications", headers=auth_headers_host).json()
    assert again["notifications"][0]["is_read"] is True


def test_cannot_read_someone_elses(db, client, host, auth_headers_client):
    notification = NotificationService(db).notify(host.id, "hello", "world")
    db.commit()

    response = client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers_client)

    assert response.status_code == 404


def test_inbox_requires_auth(client):
    assert client.get("/api/v1/notifications").status_code == 401
