import json

import pytest
import responses
from atproto import models

from errors import InvalidRecord, InvalidResponse, PublishFailed, SessionFailed, UploadRejected
from platforms.base import Session
from platforms.bluesky_client import BlueskyClient, build_post_record, post_url_from_uri

PDS_URL = "https://pds.test"
CREATE_SESSION_URL = f"{PDS_URL}/xrpc/com.atproto.server.createSession"
CREATE_RECORD_URL = f"{PDS_URL}/xrpc/com.atproto.repo.createRecord"
UPLOAD_BLOB_URL = f"{PDS_URL}/xrpc/com.atproto.repo.uploadBlob"
RECORD_URI = "at://did:plc:testuser/app.bsky.feed.post/3kabc123"


@pytest.fixture
def client():
    return BlueskyClient(PDS_URL + "/", "alice.test", "app-password")


def test_name_and_char_limit():
    assert BlueskyClient.name == "bluesky"
    assert BlueskyClient.char_limit == 300


@responses.activate
def test_login(client):
    responses.add(responses.POST, CREATE_SESSION_URL, json={
        "accessJwt": "access-token",
        "refreshJwt": "refresh-token",
        "did": "did:plc:testuser",
        "handle": "alice.test",
    })

    session = client.login()

    assert session.access_token == "access-token"
    assert session.did == "did:plc:testuser"
    assert json.loads(responses.calls[0].request.body) == {
        "identifier": "alice.test",
        "password": "app-password",
    }


def test_session_token_not_in_repr():
    assert "secret" not in repr(Session(access_token="secret", did="did:plc:x"))


@responses.activate
def test_login_failure(client):
    responses.add(responses.POST, CREATE_SESSION_URL, status=401,
                  json={"error": "AuthenticationRequired", "message": "Invalid identifier or password"})

    with pytest.raises(SessionFailed) as exc:
        client.login()

    assert exc.value.status_code == 401
    assert "Invalid identifier or password" in str(exc.value)


@responses.activate
def test_upload_logs_in_lazily(client, blob_json):
    responses.add(responses.POST, CREATE_SESSION_URL, json={"accessJwt": "tok", "did": "did:plc:testuser"})
    responses.add(responses.POST, UPLOAD_BLOB_URL, json={"blob": blob_json("image/gif", size=3)})

    blob = client.upload_blob(b"GIF", "image/gif")

    assert isinstance(blob, models.blob_ref.BlobRef)
    assert blob.ref.link == blob_json()["ref"]["$link"]
    assert (blob.mime_type, blob.size) == ("image/gif", 3)
    assert [c.request.url for c in responses.calls] == [CREATE_SESSION_URL, UPLOAD_BLOB_URL]
    assert responses.calls[1].request.headers["Authorization"] == "Bearer tok"


@responses.activate
def test_upload_blob_rejected(bluesky):
    responses.add(responses.POST, UPLOAD_BLOB_URL, status=400, body='{"error":"InvalidMimeType"}')

    with pytest.raises(UploadRejected) as exc:
        bluesky.upload_blob(b"data", "image/png")

    assert exc.value.status_code == 400
    assert "InvalidMimeType" in exc.value.body


@responses.activate
def test_upload_blob_without_blob_in_response(bluesky):
    responses.add(responses.POST, UPLOAD_BLOB_URL, json={})

    with pytest.raises(InvalidResponse):
        bluesky.upload_blob(b"data", "image/png")


@responses.activate
def test_create_post(bluesky):
    responses.add(responses.POST, CREATE_RECORD_URL, json={"uri": RECORD_URI, "cid": "bafyrecord"})
    record = build_post_record("Hello", langs=["en"], created_at="2026-01-01T00:00:00+00:00")

    uri = bluesky.create_post(record)

    assert uri == RECORD_URI
    request = responses.calls[0].request
    assert request.headers["Authorization"] == "Bearer access-token"
    assert json.loads(request.body) == {
        "repo": "did:plc:testuser",
        "collection": "app.bsky.feed.post",
        "record": {
            "$type": "app.bsky.feed.post",
            "text": "Hello",
            "createdAt": "2026-01-01T00:00:00+00:00",
            "langs": ["en"],
        },
    }


@responses.activate
def test_create_post_failure(bluesky):
    responses.add(responses.POST, CREATE_RECORD_URL, status=400, body="record/text must not be longer than 300 graphemes")

    with pytest.raises(PublishFailed) as exc:
        bluesky.create_post(build_post_record("x" * 400))

    assert exc.value.status_code == 400
    assert "300 graphemes" in str(exc.value)


def test_post_url_from_uri():
    assert post_url_from_uri(RECORD_URI, "alice.test") == "https://bsky.app/profile/alice.test/post/3kabc123"


# --- record building ---

def test_record_omits_empty_fields():
    record = build_post_record("Hi", langs=[], facets=[], created_at="2026-01-01T00:00:00+00:00")
    assert models.get_model_as_dict(record) == {
        "$type": "app.bsky.feed.post",
        "text": "Hi",
        "createdAt": "2026-01-01T00:00:00+00:00",
    }


def test_record_defaults_created_at_to_now():
    record = build_post_record("Hi")
    assert record.created_at.startswith("20")
    assert record.created_at.endswith("+00:00")


def test_record_with_facets_and_images_embed(blob_json):
    blob = models.get_or_create(blob_json(size=10, link="bafyimg"), models.blob_ref.BlobRef)
    facet = models.AppBskyRichtextFacet.Main(
        index=models.AppBskyRichtextFacet.ByteSlice(byte_start=4, byte_end=23),
        features=[models.AppBskyRichtextFacet.Link(uri="https://example.com")],
    )
    embed = models.AppBskyEmbedImages.Main(images=[
        models.AppBskyEmbedImages.Image(
            alt="Alt",
            image=blob,
            aspect_ratio=models.AppBskyEmbedDefs.AspectRatio(width=2, height=1),
        ),
    ])

    record = models.get_model_as_dict(
        build_post_record("See https://example.com", facets=[facet], embed=embed)
    )

    features = record["facets"][0]["features"]
    assert features == [{"$type": "app.bsky.richtext.facet#link", "uri": "https://example.com"}]
    assert record["embed"]["$type"] == "app.bsky.embed.images"
    image = record["embed"]["images"][0]
    assert image["image"]["ref"] == {"$link": "bafyimg"}
    assert (image["aspectRatio"]["width"], image["aspectRatio"]["height"]) == (2, 1)


def test_record_rejects_more_than_three_langs():
    with pytest.raises(InvalidRecord):
        build_post_record("Hallo", langs=["en", "de", "fr", "es"])
