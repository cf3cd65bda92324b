"""
End-to-end tests through the HTTP API: magic link edits, denials, review
mode, featured photos and the admin surface.
"""

from sqlmodel import select

from app.models.audit import AuditEntry, AuditStatus
from app.models.dog import Dog
from app.models.edit_token import EditToken
from app.models.media import Media, MediaStatus
from app.models.push_subscription import PushSubscription
from conftest import ADMIN_HEADERS


async def audit_entries(session_factory):
    async with session_factory() as fresh:
        result = await fresh.execute(select(AuditEntry).order_by(AuditEntry.id))
        return list(result.scalars().all())


async def fetch(session_factory, model, id):
    async with session_factory() as fresh:
        return await fresh.get(model, id)


class TestMagicLinkEdits:

    async def test_token_holder_edits_a_dog(self, client, session_factory, dog, make_token, make_subscription, sender):
        token = await make_token(label="Family A")
        await make_subscription("https://push.example/admin")
        client.cookies.set("magicToken", token.token)

        response = await client.patch(f"/dogs/{dog.id}", json={"coat": "brindle"})

        assert response.status_code == 200
        assert response.json()["coat"] == "brindle"

        [entry] = await audit_entries(session_factory)
        assert entry.changes_summary == "[Family A] S1: Robe: black → brindle"
        assert entry.changed_by == "token"
        assert entry.changed_by_label == "Family A"
        assert entry.status == AuditStatus.ACCEPTED
        assert entry.frontend_url == f"https://dogs.example/chiens/{dog.id}/"

        assert len(sender.sent) == 1
        assert sender.sent[0]["payload"]["body"] == "Robe: black → brindle (Family A)"
        assert sender.sent[0]["payload"]["data"]["url"] == entry.backend_url == f"https://admin.dogs.example/dogs/{dog.id}"

        used = await fetch(session_factory, EditToken, token.id)
        assert used.usage_count == 1
        assert used.last_used_at is not None

    async def test_token_in_header(self, client, session_factory, dog, make_token):
        token = await make_token()

        response = await client.patch(
            f"/dogs/{dog.id}", json={"breed": "Husky"}, headers={"X-Magic-Token": token.token}
        )

        assert response.status_code == 200
        assert (await fetch(session_factory, Dog, dog.id)).breed == "Husky"

    async def test_no_op_edit_is_audited_without_rebuild(self, client, session_factory, dog, make_token, monkeypatch):
        token = await make_token()
        builds = []

        async def fake_build(url):
            builds.append(url)
            return True

        monkeypatch.setattr("app.handlers.pipeline.trigger_frontend_build", fake_build)

        response = await client.patch(f"/dogs/{dog.id}", json={"coat": "black"}, headers={"X-Magic-Token": token.token})

        assert response.status_code == 200
        [entry] = await audit_entries(session_factory)
        assert entry.changes == []
        assert entry.changes_summary == "[Family A] S1"
        assert builds == []

    async def test_real_edit_triggers_rebuild(self, client, dog, make_token, monkeypatch):
        token = await make_token()
        builds = []

        async def fake_build(url):
            builds.append(url)
            return True

        monkeypatch.setattr("app.handlers.pipeline.trigger_frontend_build", fake_build)

        await client.patch(f"/dogs/{dog.id}", json={"coat": "white"}, headers={"X-Magic-Token": token.token})

        assert len(builds) == 1

    async def test_token_holder_cannot_rename(self, client, session_factory, dog, make_token):
        token = await make_token()

        response = await client.patch(f"/dogs/{dog.id}", json={"name": "Rex"}, headers={"X-Magic-Token": token.token})

        assert response.status_code == 403
        assert (await fetch(session_factory, Dog, dog.id)).name == "S1"
        assert await audit_entries(session_factory) == []


class TestDenials:

    async def test_anonymous_edit_is_denied(self, client, session_factory, dog, make_subscription, sender):
        await make_subscription("https://push.example/admin")

        response = await client.patch(f"/dogs/{dog.id}", json={"coat": "brindle"})

        assert response.status_code == 403
        assert (await fetch(session_factory, Dog, dog.id)).coat == "black"
        assert await audit_entries(session_factory) == []
        assert sender.sent == []

    async def test_revoked_token_is_denied(self, client, session_factory, dog, make_token):
        token = await make_token()
        response = await client.post(f"/tokens/{token.id}/deactivate", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.patch(f"/dogs/{dog.id}", json={"coat": "brindle"}, headers={"X-Magic-Token": token.token})

        assert response.status_code == 403
        assert (await fetch(session_factory, EditToken, token.id)).usage_count == 0

    async def test_unknown_token_is_denied(self, client, dog):
        response = await client.patch(f"/dogs/{dog.id}", json={"coat": "brindle"}, headers={"X-Magic-Token": "0" * 48})

        assert response.status_code == 403

    async def test_deletes_need_the_admin_key(self, client, session_factory, dog, make_token):
        token = await make_token()

        response = await client.delete(f"/dogs/{dog.id}", headers={"X-Magic-Token": token.token})
        assert response.status_code == 403

        response = await client.delete(f"/dogs/{dog.id}", headers={"X-Admin-Key": "wrong"})
        assert response.status_code == 403

        response = await client.delete(f"/dogs/{dog.id}", headers=ADMIN_HEADERS)
        assert response.status_code == 204
        assert await fetch(session_factory, Dog, dog.id) is None

    async def test_reads_are_public(self, client, dog):
        response = await client.get(f"/dogs/{dog.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "S1"


class TestReviewMode:

    async def set_mode(self, client, mode):
        response = await client.put("/settings/moderation", json={"mode": mode}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["mode"] == mode

    async def test_anonymous_upload_waits_for_approval(self, client, session_factory, dog, make_subscription, sender):
        await make_subscription("https://push.example/admin")
        await self.set_mode(client, "require_review")

        response = await client.post("/media", json={"dog_id": dog.id, "file": "park.jpg"})

        assert response.status_code == 201
        media = response.json()
        assert media["status"] == "pending"

        [entry] = await audit_entries(session_factory)
        assert entry.status == AuditStatus.PENDING
        assert entry.changed_by == "anonymous"

        payload = sender.sent[0]["payload"]
        assert payload["title"] == "🐕 Nouvelle photo à approuver"
        assert payload["data"]["action"] == "approve"

        assert (await client.get(f"/media/{media['id']}")).status_code == 404
        assert (await client.get(f"/media/{media['id']}", headers=ADMIN_HEADERS)).status_code == 200

    async def test_admin_approves_pending_media(self, client, session_factory, dog):
        await self.set_mode(client, "require_review")
        media = (await client.post("/media", json={"dog_id": dog.id, "file": "park.jpg"})).json()

        response = await client.patch(f"/media/{media['id']}", json={"status": "approved"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert (await client.get(f"/dogs/{dog.id}/media")).json()[0]["id"] == media["id"]

    async def test_pending_upload_does_not_take_the_featured_flag(self, client, session_factory, dog, make_media, make_token):
        m1 = await make_media(dog, is_featured=True, name="m1")
        token = await make_token()
        await self.set_mode(client, "require_review")

        response = await client.post(
            "/media", json={"dog_id": dog.id, "file": "park.jpg", "is_featured": True},
            headers={"X-Magic-Token": token.token},
        )

        assert response.status_code == 201
        assert response.json()["is_featured"] is False
        assert (await fetch(session_factory, Media, m1.id)).is_featured is True

    async def test_approval_features_the_first_photo(self, client, session_factory, dog):
        await self.set_mode(client, "require_review")
        media = (await client.post("/media", json={"dog_id": dog.id, "file": "park.jpg"})).json()
        assert media["is_featured"] is False

        response = await client.patch(f"/media/{media['id']}", json={"status": "approved"}, headers=ADMIN_HEADERS)

        assert response.json()["is_featured"] is True
        assert (await fetch(session_factory, Media, media["id"])).is_featured is True

    async def test_token_holder_cannot_approve(self, client, dog, make_token):
        token = await make_token()
        await self.set_mode(client, "require_review")
        media = (await client.post("/media", json={"dog_id": dog.id, "file": "park.jpg"})).json()

        response = await client.patch(
            f"/media/{media['id']}", json={"status": "approved"}, headers={"X-Magic-Token": token.token}
        )

        assert response.status_code == 403

    async def test_pending_dog_is_hidden(self, client, owner, make_token):
        token = await make_token()
        await self.set_mode(client, "require_review")

        response = await client.post(
            "/dogs", json={"name": "Rex", "owner_id": owner.id}, headers={"X-Magic-Token": token.token}
        )
        assert response.status_code == 201
        dog = response.json()
        assert dog["status"] == "pending"

        assert (await client.get(f"/dogs/{dog['id']}")).status_code == 404
        assert dog["id"] not in [d["id"] for d in (await client.get("/dogs")).json()]
        assert (await client.get(f"/dogs/{dog['id']}", headers=ADMIN_HEADERS)).status_code == 200

    async def test_mode_switch_leaves_existing_records(self, client, session_factory, dog):
        await self.set_mode(client, "require_review")
        await self.set_mode(client, "auto_approve")

        assert (await fetch(session_factory, Dog, dog.id)).status == "approved"

    async def test_pending_changes_are_reviewed(self, client, dog, make_token):
        token = await make_token()
        await self.set_mode(client, "require_review")
        await client.patch(f"/dogs/{dog.id}", json={"coat": "brindle"}, headers={"X-Magic-Token": token.token})

        pending = (await client.get("/changes", params={"status": "pending"}, headers=ADMIN_HEADERS)).json()
        assert len(pending) == 1

        response = await client.patch(
            f"/changes/{pending[0]['id']}/status", json={"status": "accepted"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

        response = await client.patch(
            f"/changes/{pending[0]['id']}/status", json={"status": "reverted"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 409


class TestFeaturedPhotos:

    async def test_switching_featured_photo(self, client, session_factory, dog, make_media, make_token):
        token = await make_token()
        m1 = await make_media(dog, is_featured=True, name="m1")
        m2 = await make_media(dog, name="m2")

        response = await client.post(f"/media/{m2.id}/featured", headers={"X-Magic-Token": token.token})

        assert response.status_code == 200
        assert response.json()["is_featured"] is True
        assert (await fetch(session_factory, Media, m1.id)).is_featured is False
        assert (await fetch(session_factory, Media, m2.id)).is_featured is True

        listed = (await client.get(f"/dogs/{dog.id}/media")).json()
        assert [m["id"] for m in listed if m["is_featured"]] == [m2.id]

    async def test_anonymous_cannot_switch(self, client, dog, make_media):
        m1 = await make_media(dog, name="m1")

        response = await client.post(f"/media/{m1.id}/featured")

        assert response.status_code == 403

    async def test_upload_with_wrong_extension_is_rejected(self, client, dog):
        response = await client.post("/media", json={"dog_id": dog.id, "file": "notes.txt"})

        assert response.status_code == 422

    async def test_anonymous_upload_cannot_claim_featured(self, client, session_factory, dog, make_media):
        m1 = await make_media(dog, is_featured=True, name="m1")

        response = await client.post("/media", json={"dog_id": dog.id, "file": "park.jpg", "is_featured": True})

        assert response.status_code == 403
        assert (await fetch(session_factory, Media, m1.id)).is_featured is True
        assert await audit_entries(session_factory) == []

    async def test_featuring_pending_media_is_refused(self, client, dog, make_media):
        pending = await make_media(dog, status=MediaStatus.PENDING, name="pending")

        response = await client.post(f"/media/{pending.id}/featured", headers=ADMIN_HEADERS)

        assert response.status_code == 400


class TestAdministration:

    async def test_admin_edits_are_audited_but_not_notified(self, client, session_factory, dog, make_subscription, sender):
        await make_subscription("https://push.example/admin")

        response = await client.patch(f"/dogs/{dog.id}", json={"name": "Sirius"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        [entry] = await audit_entries(session_factory)
        assert entry.changed_by == "admin"
        assert entry.changed_by_label == "Louise"
        assert entry.changes_summary == "Sirius: Nom: S1 → Sirius"
        assert sender.sent == []

    async def test_issue_token_returns_magic_link(self, client):
        response = await client.post("/tokens", json={"label": "Voisins"}, headers=ADMIN_HEADERS)

        assert response.status_code == 201
        body = response.json()
        assert body["magic_link"] == f"https://dogs.example/?magic={body['token']}"

        listed = (await client.get("/tokens", headers=ADMIN_HEADERS)).json()
        assert [t["label"] for t in listed] == ["Voisins"]

    async def test_tokens_are_admin_only(self, client, make_token):
        token = await make_token()

        response = await client.post("/tokens", json={"label": "Moi"}, headers={"X-Magic-Token": token.token})

        assert response.status_code == 403

    async def test_owner_with_dogs_cannot_be_deleted(self, client, owner, dog):
        response = await client.delete(f"/owners/{owner.id}", headers=ADMIN_HEADERS)

        assert response.status_code == 409

    async def test_owner_search(self, client, owner):
        response = await client.get("/owners", params={"search": "cam"})

        assert [o["name"] for o in response.json()] == ["Camille"]

    async def test_push_subscription_lifecycle(self, client, session_factory):
        key = (await client.get("/subscriptions/vapid-public-key")).json()
        assert key == {"publicKey": "test-public-key"}

        subscription = {"endpoint": "https://push.example/phone", "keys": {"p256dh": "k", "auth": "a"}}
        assert (await client.post("/subscriptions", json=subscription)).status_code == 403

        response = await client.post("/subscriptions", json=subscription, headers=ADMIN_HEADERS)
        assert response.status_code == 201
        response = await client.post("/subscriptions", json=subscription, headers=ADMIN_HEADERS)
        assert response.status_code == 201

        async with session_factory() as fresh:
            result = await fresh.execute(select(PushSubscription))
            assert len(result.scalars().all()) == 1

        response = await client.delete(
            "/subscriptions", params={"endpoint": "https://push.example/phone"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 204

    async def test_health(self, client):
        assert (await client.get("/health/live")).json() == {"status": "alive"}
        assert (await client.get("/health/ready")).json() == {"status": "ready"}
