"""
Admin notification tests, mostly against the recording sender from conftest.
"""

from types import SimpleNamespace

import pytest
from pywebpush import WebPushException
from sqlmodel import select

from app.core.config import Settings
from app.handlers.auth import ANONYMOUS, ActorContext, ActorKind
from app.handlers.changes import diff
from app.handlers.notifications import (
    ChangeEvent,
    DeliveryError,
    NotificationDispatcher,
    PushConfigurationError,
    PushSender,
    build_payload,
)
from app.models.audit import AuditOperation
from app.models.moderation import ModerationMode
from app.models.push_subscription import PushSubscription

FAMILY = ActorContext(kind=ActorKind.TOKEN, label="Family A", token_id=1)


def event(**overrides):
    values = dict(
        entity_kind="dog",
        entity_id=7,
        display_name="S1",
        operation=AuditOperation.UPDATE,
        changes=tuple(diff("dog", {"coat": "black"}, {"coat": "brindle"})),
        actor=FAMILY,
        moderation_mode=ModerationMode.AUTO_APPROVE,
        admin_url="https://admin.dogs.example/dogs/7",
        dog_id=7,
        dog_name="S1",
    )
    values.update(overrides)
    return ChangeEvent(**values)


class TestPayload:

    def test_update_lists_changes_and_actor(self):
        payload = build_payload(event())

        assert payload.title == "🐕 S1 modifié"
        assert payload.body == "Robe: black → brindle (Family A)"
        assert payload.data == {
            "entityType": "dog",
            "entityId": 7,
            "action": "view",
            "url": "https://admin.dogs.example/dogs/7",
            "dogId": 7,
        }

    def test_review_mode_asks_for_approval(self):
        payload = build_payload(event(moderation_mode=ModerationMode.REQUIRE_REVIEW))

        assert payload.data["action"] == "approve"

    def test_photo_awaiting_approval(self):
        payload = build_payload(event(
            entity_kind="media",
            entity_id=12,
            display_name="Photo de S1",
            admin_url="https://admin.dogs.example/media/12",
            operation=AuditOperation.CREATE,
            changes=(),
            actor=ANONYMOUS,
            moderation_mode=ModerationMode.REQUIRE_REVIEW,
        ))

        assert payload.title == "🐕 Nouvelle photo à approuver"
        assert payload.body == "Une photo de S1 attend votre approbation."
        assert payload.data["url"] == "https://admin.dogs.example/media/12"
        assert payload.data["mediaId"] == 12
        assert payload.data["dogId"] == 7

    def test_photo_published_directly(self):
        payload = build_payload(event(
            entity_kind="media",
            entity_id=12,
            operation=AuditOperation.CREATE,
            changes=(),
            actor=ANONYMOUS,
        ))

        assert payload.title == "🐕 Nouvelle photo ajoutée"
        assert payload.data["action"] == "view"

    def test_owner_creation(self):
        payload = build_payload(event(
            entity_kind="owner",
            entity_id=3,
            display_name="Camille",
            admin_url="https://admin.dogs.example/owners/3",
            operation=AuditOperation.CREATE,
            changes=(),
            actor=ANONYMOUS,
        ))

        assert payload.title == "👤 Nouveau humain"
        assert payload.body == '"Camille" a été créé'
        assert payload.data["url"] == "https://admin.dogs.example/owners/3"

    def test_json_keeps_accents(self):
        assert "é" in build_payload(event(operation=AuditOperation.DELETE)).to_json()


class TestDispatcher:

    async def test_no_subscriptions_is_a_no_op(self, sender, session_factory):
        report = await NotificationDispatcher(sender, session_factory).notify(event())

        assert report.delivered == 0
        assert report.failed == 0
        assert report.pruned == []
        assert sender.sent == []

    async def test_every_admin_subscription_gets_one_payload(self, sender, session_factory, make_subscription):
        await make_subscription("https://push.example/a")
        await make_subscription("https://push.example/b")
        await make_subscription("https://push.example/visitor", admin=False)

        report = await NotificationDispatcher(sender, session_factory).notify(event())

        assert report.delivered == 2
        assert sorted(s["endpoint"] for s in sender.sent) == ["https://push.example/a", "https://push.example/b"]
        assert sender.sent[0]["keys"] == {"p256dh": "key", "auth": "secret"}
        assert sender.sent[0]["payload"]["title"] == "🐕 S1 modifié"

    async def test_gone_subscription_is_pruned(self, sender, session_factory, session, make_subscription):
        sa = await make_subscription("https://push.example/a")
        sb = await make_subscription("https://push.example/b")
        sender.failures["https://push.example/b"] = 410

        report = await NotificationDispatcher(sender, session_factory).notify(event())

        assert report.delivered == 1
        assert report.pruned == [sb.id]
        result = await session.execute(select(PushSubscription.id))
        assert list(result.scalars().all()) == [sa.id]

    @pytest.mark.parametrize("status_code", [404, 429, 500, None])
    async def test_other_failures_keep_the_subscription(self, sender, session_factory, session, make_subscription, status_code):
        await make_subscription("https://push.example/a")
        await make_subscription("https://push.example/b")
        sender.failures["https://push.example/a"] = status_code

        report = await NotificationDispatcher(sender, session_factory).notify(event())

        assert report.delivered == 1
        assert report.failed == 1
        assert report.pruned == []
        result = await session.execute(select(PushSubscription))
        assert len(result.scalars().all()) == 2

    async def test_unexpected_sender_errors_count_as_failures(self, session_factory, make_subscription):
        class ExplodingSender:
            async def send(self, endpoint, keys, data):
                raise ConnectionError("no route")

        await make_subscription("https://push.example/a")

        report = await NotificationDispatcher(ExplodingSender(), session_factory).notify(event())

        assert report.failed == 1

    async def test_dispatch_never_raises(self, sender):
        def broken_factory():
            raise RuntimeError("database is gone")

        report = await NotificationDispatcher(sender, broken_factory).notify(event())

        assert report.delivered == 0


def test_only_gone_means_pruned():
    assert DeliveryError("gone", 410).is_gone is True
    assert DeliveryError("missing", 404).is_gone is False
    assert DeliveryError("network", None).is_gone is False


def test_push_sender_requires_vapid_keys():
    with pytest.raises(PushConfigurationError):
        PushSender.from_settings(Settings(VAPID_PUBLIC_KEY=None, VAPID_PRIVATE_KEY=None))

    sender = PushSender.from_settings(Settings(VAPID_PUBLIC_KEY="pub", VAPID_PRIVATE_KEY="priv"))
    assert sender.public_key == "pub"


class TestPushSender:

    @pytest.fixture
    def push_sender(self):
        return PushSender("pub", "priv", "mailto:admin@dogs.example", ttl=60)

    async def test_send_passes_subscription_and_vapid_claims(self, push_sender, monkeypatch):
        calls = []
        monkeypatch.setattr("app.handlers.notifications.webpush", lambda **kwargs: calls.append(kwargs))

        await push_sender.send("https://push.example/a", {"p256dh": "k", "auth": "a"}, '{"title": "x"}')

        [call] = calls
        assert call["subscription_info"] == {"endpoint": "https://push.example/a", "keys": {"p256dh": "k", "auth": "a"}}
        assert call["data"] == '{"title": "x"}'
        assert call["vapid_private_key"] == "priv"
        assert call["vapid_claims"] == {"sub": "mailto:admin@dogs.example"}
        assert call["ttl"] == 60

    async def test_refusal_carries_the_status_code(self, push_sender, monkeypatch):
        def refuse(**kwargs):
            raise WebPushException("gone", response=SimpleNamespace(status_code=410))
        monkeypatch.setattr("app.handlers.notifications.webpush", refuse)

        with pytest.raises(DeliveryError) as excinfo:
            await push_sender.send("https://push.example/a", {}, "{}")

        assert excinfo.value.status_code == 410
        assert excinfo.value.is_gone is True

    async def test_refusal_without_response_is_not_gone(self, push_sender, monkeypatch):
        def refuse(**kwargs):
            raise WebPushException("connection reset")
        monkeypatch.setattr("app.handlers.notifications.webpush", refuse)

        with pytest.raises(DeliveryError) as excinfo:
            await push_sender.send("https://push.example/a", {}, "{}")

        assert excinfo.value.status_code is None
        assert excinfo.value.is_gone is False
