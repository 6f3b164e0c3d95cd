"""Testimonial submission and feed tests."""

import math
from unittest.mock import patch

import pytest
from conftest import MEDIA_BASE_URL, register_and_login
from sqlalchemy.exc import SQLAlchemyError

from testimonial_hub.models.testimonial import Testimonial
from testimonial_hub.models.user import User


def text_form(**overrides):
    form = {
        "name": "Jane Doe",
        "course": "Advanced React",
        "type": "text",
        "date": "2024-05-01",
        "content": "Great course",
    }
    form.update(overrides)
    return form


def submit(client, headers, data=None, files=None):
    return client.post(
        "/testimonials",
        headers=headers,
        data=data if data is not None else text_form(),
        files=files,
    )


def feed_total(client):
    return client.get("/testimonials").json()["total"]


def test_submit_text_testimonial(client, auth_headers):
    """Inline text is stored verbatim as content and mirrored into message."""
    response = submit(client, auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["content"] == "Great course"
    assert data["message"] == "Great course"
    assert data["type"] == "text"
    assert data["user_id"] == auth_headers.user_id
    assert data["user"] == {"name": "Test User", "image": ""}
    assert data["date"].startswith("2024-05-01")
    assert data["id"]
    assert data["created_at"]


def test_submit_accepts_iso_datetime_with_zulu(client, auth_headers):
    response = submit(client, auth_headers, data=text_form(date="2024-05-01T14:23:00.000Z"))
    assert response.status_code == 201


def test_submit_unauthenticated(client, auth_headers):
    """Unauthenticated submissions are rejected and nothing is stored."""
    before = feed_total(client)

    response = submit(client, headers={})

    assert response.status_code == 401
    assert feed_total(client) == before


def test_submit_bad_token(client):
    response = submit(client, headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_submit_then_read_most_recent(client, auth_headers):
    """A new text testimonial is the first item of the feed."""
    submit(client, auth_headers, data=text_form(content="Older"))
    assert submit(client, auth_headers).status_code == 201

    response = client.get("/testimonials?number=1&page=1")

    assert response.status_code == 200
    items = response.json()["testimonials"]
    assert len(items) == 1
    assert items[0]["content"] == "Great course"


def test_submit_media_uses_uploaded_url(client, auth_headers, uploader):
    """Media submissions store the host URL, never the bytes or the filename."""
    response = submit(
        client,
        auth_headers,
        data=text_form(type="video", content=""),
        files={"media": ("clip.webm", b"\x1a\x45\xdf\xa3binary", "video/webm")},
    )

    assert response.status_code == 201
    data = response.json()
    assert len(uploader.calls) == 1
    call = uploader.calls[0]
    assert call["payload"] == b"\x1a\x45\xdf\xa3binary"
    assert call["content_type"] == "video/webm"
    assert call["key"].startswith("testimonials/")
    assert data["content"] == f"{MEDIA_BASE_URL}/{call['key']}"
    assert data["message"] == ""
    assert "clip.webm" != data["content"]


def test_submit_media_overrides_inline_content(client, auth_headers, uploader):
    response = submit(
        client,
        auth_headers,
        data=text_form(type="audio", content="ignored text"),
        files={"media": ("voice.mp3", b"ID3audio", "audio/mpeg")},
    )
    assert response.status_code == 201
    assert response.json()["content"].startswith(MEDIA_BASE_URL)
    assert response.json()["message"] == ""


def test_submit_upload_failure(client, auth_headers, uploader, db):
    """A failed upload aborts the submission without a stored record."""
    uploader.failures_remaining = 1

    response = submit(
        client,
        auth_headers,
        data=text_form(type="video", content=""),
        files={"media": ("clip.webm", b"data", "video/webm")},
    )

    assert response.status_code == 502
    assert response.json()["code"] == "upstream_error"
    assert db.query(Testimonial).count() == 0


def test_submit_storage_failure(client, auth_headers, db):
    """A failed write surfaces as 500 and is not retried."""
    with patch.object(db, "commit", side_effect=SQLAlchemyError("disk full")) as mock_commit:
        response = submit(client, auth_headers)

    assert response.status_code == 500
    assert response.json() == {"code": "storage_error", "detail": "Failed to save testimonial"}
    mock_commit.assert_called_once()
    assert db.query(Testimonial).count() == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"type": "podcast"},
        {"date": "not-a-date"},
        {"date": "2024-13-45"},
        {"name": ""},
        {"content": ""},
        {"type": "video", "content": "no file and not a url"},
    ],
)
def test_submit_invalid_fields(client, auth_headers, uploader, overrides):
    """Validation failures are 400 with no upload and no write."""
    before = feed_total(client)

    response = submit(client, auth_headers, data=text_form(**overrides))

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert uploader.calls == []
    assert feed_total(client) == before


def test_submit_missing_required_field(client, auth_headers):
    data = text_form()
    del data["course"]
    response = submit(client, auth_headers, data=data)
    assert response.status_code == 400
    assert "course" in response.json()["detail"]


def test_submit_unknown_field(client, auth_headers):
    response = submit(client, auth_headers, data=text_form(rating="5"))
    assert response.status_code == 400


def test_submit_two_media_files(client, auth_headers, uploader):
    response = submit(
        client,
        auth_headers,
        data=text_form(type="audio", content=""),
        files=[
            ("media", ("a.mp3", b"one", "audio/mpeg")),
            ("media", ("b.mp3", b"two", "audio/mpeg")),
        ],
    )
    assert response.status_code == 400
    assert uploader.calls == []


def test_submit_media_with_url_content(client, auth_headers):
    """Audio/video without a file is allowed when content is already a URL."""
    url = "https://cdn.example.com/review.mp4"
    response = submit(client, auth_headers, data=text_form(type="video", content=url))
    assert response.status_code == 201
    assert response.json()["content"] == url


def test_submit_for_deleted_user(client, auth_headers, db):
    """An identity whose user record is gone yields 404."""
    db.query(User).filter(User.id == auth_headers.user_id).delete()
    db.commit()

    response = submit(client, auth_headers)
    assert response.status_code == 404


def test_list_empty(client):
    response = client.get("/testimonials")
    assert response.status_code == 200
    assert response.json() == {
        "testimonials": [],
        "total": 0,
        "page": 1,
        "limit": 10,
        "totalPages": 0,
    }


@pytest.mark.parametrize(
    "query",
    ["number=-1&page=1", "number=0", "page=0", "page=-3", "number=abc", "page=1.5"],
)
def test_list_invalid_params(client, query):
    response = client.get(f"/testimonials?{query}")
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.parametrize("page_size", [1, 3, 7, 10])
def test_list_pagination_covers_all(client, auth_headers, page_size):
    """Concatenating every page yields each record exactly once, newest first."""
    for i in range(7):
        submit(client, auth_headers, data=text_form(content=f"Review {i}"))

    first = client.get(f"/testimonials?number={page_size}&page=1").json()
    assert first["total"] == 7
    assert first["totalPages"] == math.ceil(7 / page_size)

    seen = []
    for page in range(1, first["totalPages"] + 1):
        body = client.get(f"/testimonials?number={page_size}&page={page}").json()
        assert len(body["testimonials"]) <= page_size
        seen.extend(item["id"] for item in body["testimonials"])

    assert len(seen) == len(set(seen)) == 7
    assert seen == sorted(seen, reverse=True)


def test_list_large_page_size_returns_all(client, auth_headers):
    """Any positive page size is accepted; one big page holds every record."""
    for i in range(3):
        submit(client, auth_headers, data=text_form(content=f"Review {i}"))

    response = client.get("/testimonials?number=1000&page=1")

    assert response.status_code == 200
    body = response.json()
    assert len(body["testimonials"]) == body["total"] == 3
    assert body["totalPages"] == 1


def test_versioned_paths_alias_public_paths(client, auth_headers):
    """The feed is also reachable under /api/v1."""
    response = client.post("/api/v1/testimonials", headers=auth_headers, data=text_form())
    assert response.status_code == 201

    body = client.get("/api/v1/testimonials?number=101&page=1").json()
    assert body["total"] == 1
    assert body["testimonials"][0]["id"] == response.json()["id"]


def test_list_page_past_end(client, auth_headers):
    submit(client, auth_headers)
    body = client.get("/testimonials?number=10&page=5").json()
    assert body["testimonials"] == []
    assert body["total"] == 1


def test_list_missing_owner_uses_sentinel(client, auth_headers, db):
    """A testimonial whose owner was removed still appears, with a placeholder profile."""
    other = register_and_login(client, "gone@example.com", "password1", "Gone")
    submit(client, other, data=text_form(content="Orphaned review"))
    submit(client, auth_headers)

    db.query(User).filter(User.id == other.user_id).delete()
    db.commit()

    response = client.get("/testimonials")

    assert response.status_code == 200
    items = {item["content"]: item for item in response.json()["testimonials"]}
    assert items["Orphaned review"]["user"] == {"name": "Unknown User", "image": ""}
    assert items["Great course"]["user"]["name"] == "Test User"


def test_list_filter_by_type(client, auth_headers):
    submit(client, auth_headers)
    submit(
        client,
        auth_headers,
        data=text_form(type="video", content="https://cdn.example.com/v.mp4"),
    )

    body = client.get("/testimonials?type=video").json()
    assert body["total"] == 1
    assert body["testimonials"][0]["type"] == "video"

    assert client.get("/testimonials?type=gif").status_code == 400


def test_list_search(client, auth_headers):
    submit(client, auth_headers, data=text_form(course="TypeScript Essentials", content="Solid"))
    submit(client, auth_headers, data=text_form(name="Bob", content="Loved the 100% hands-on labs"))
    submit(client, auth_headers, data=text_form(content="Okay"))

    assert client.get("/testimonials?q=typescript").json()["total"] == 1
    assert client.get("/testimonials?q=BOB").json()["total"] == 1
    assert client.get("/testimonials?q=100%25").json()["total"] == 1
    assert client.get("/testimonials?q=nothing-matches").json()["total"] == 0


def test_recent(client, auth_headers):
    for i in range(5):
        submit(client, auth_headers, data=text_form(content=f"Review {i}"))

    response = client.get("/testimonials/recent")

    assert response.status_code == 200
    assert [item["content"] for item in response.json()] == ["Review 4", "Review 3", "Review 2"]
    assert client.get("/testimonials/recent?limit=0").status_code == 400
