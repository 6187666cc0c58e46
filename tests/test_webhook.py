"""
Tests for PubSubHubbub subscription requests.
"""

import pytest
import requests
from unittest.mock import Mock

from amwhub.core import constants
from amwhub.webhook import PubSubHubbubSubscriber

from conftest import FakeAPIClient, make_config

TOPIC = "https://www.youtube.com/xml/feeds/videos.xml?channel_id={}"


def ok_session() -> Mock:
    session = Mock(spec=requests.Session)
    response = Mock()
    response.raise_for_status.return_value = None
    session.post.return_value = response
    return session


def posted_data(session: Mock) -> dict:
    return session.post.call_args.kwargs["data"]


@pytest.mark.unit
class TestSubscribe:
    def test_raw_channel_id(self, config, metrics):
        session = ok_session()
        subscriber = PubSubHubbubSubscriber(config, metrics=metrics, session=session)

        assert subscriber.subscribe("UC123") is True

        url = session.post.call_args.args[0]
        assert url == "https://pubsubhubbub.appspot.com/subscribe"
        data = posted_data(session)
        assert data["hub.mode"] == "subscribe"
        assert data["hub.topic"] == TOPIC.format("UC123")
        assert data["hub.callback"] == "https://hub.example.com/api/youtube/push"
        assert data["hub.verify"] == "async"
        assert data["hub.lease_seconds"] == 864000
        assert "hub.secret" not in data
        assert metrics.get(constants.METRIC_SUBSCRIBE_SENT) == 1

    def test_secret_is_sent_when_configured(self, signed_config):
        session = ok_session()
        PubSubHubbubSubscriber(signed_config, session=session).subscribe("UC123")
        assert posted_data(session)["hub.secret"] == "s3cret"

    def test_unsubscribe(self, config, metrics):
        session = ok_session()
        subscriber = PubSubHubbubSubscriber(config, metrics=metrics, session=session)

        assert subscriber.unsubscribe("UC123") is True

        data = posted_data(session)
        assert data["hub.mode"] == "unsubscribe"
        assert "hub.lease_seconds" not in data
        assert metrics.get(constants.METRIC_UNSUBSCRIBE_SENT) == 1

    def test_streamer_with_cached_channel_id(self, config, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/@alice", youtube_channel_id="UC_ALICE")
        session = ok_session()
        api = FakeAPIClient()

        assert PubSubHubbubSubscriber(config, store, api, session=session).subscribe("streamer-1")
        assert posted_data(session)["hub.topic"] == TOPIC.format("UC_ALICE")
        assert api.resolve_calls == []

    def test_streamer_with_channel_url(self, config, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/channel/UC_BOB")
        session = ok_session()

        assert PubSubHubbubSubscriber(config, store, session=session).subscribe("streamer-1")
        assert posted_data(session)["hub.topic"] == TOPIC.format("UC_BOB")

    def test_unresolved_without_auto_resolution(self, config, store, add_streamer, metrics):
        add_streamer("streamer-1", "https://youtube.com/@alice")
        session = ok_session()
        api = FakeAPIClient(channel_ids={"alice": "UC_ALICE"})
        subscriber = PubSubHubbubSubscriber(config, store, api, metrics, session=session)

        assert subscriber.subscribe("streamer-1") is False
        session.post.assert_not_called()
        assert api.resolve_calls == []
        assert metrics.get(constants.METRIC_SUBSCRIBE_UNRESOLVED) == 1

    def test_auto_resolution_persists_channel_id(self, store, add_streamer):
        config = make_config(YOUTUBE_AUTO_RESOLVE_CHANNEL_ID="true")
        add_streamer("streamer-1", "https://youtube.com/@alice")
        session = ok_session()
        api = FakeAPIClient(channel_ids={"alice": "UC_ALICE"})

        assert PubSubHubbubSubscriber(config, store, api, session=session).subscribe("streamer-1")

        assert posted_data(session)["hub.topic"] == TOPIC.format("UC_ALICE")
        assert store.get_streamer("streamer-1").youtube_channel_id == "UC_ALICE"

    def test_auto_resolution_of_plain_handle(self):
        config = make_config(YOUTUBE_AUTO_RESOLVE_CHANNEL_ID="1")
        session = ok_session()
        api = FakeAPIClient(channel_ids={"carol": "UC_CAROL"})

        assert PubSubHubbubSubscriber(config, None, api, session=session).subscribe("@carol")
        assert posted_data(session)["hub.topic"] == TOPIC.format("UC_CAROL")

    def test_auto_resolution_miss_fails_softly(self, metrics):
        config = make_config(YOUTUBE_AUTO_RESOLVE_CHANNEL_ID="yes")
        session = ok_session()
        subscriber = PubSubHubbubSubscriber(config, None, FakeAPIClient(), metrics, session=session)

        assert subscriber.subscribe("nobody") is False
        assert metrics.get(constants.METRIC_SUBSCRIBE_UNRESOLVED) == 1

    def test_empty_target(self, config):
        assert PubSubHubbubSubscriber(config, session=ok_session()).subscribe("  ") is False

    def test_hub_error_returns_false(self, config, metrics):
        session = ok_session()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
        subscriber = PubSubHubbubSubscriber(config, metrics=metrics, session=session)

        assert subscriber.subscribe("UC123") is False
        assert metrics.get(constants.METRIC_SUBSCRIBE_FAILED) == 1

    def test_network_error_returns_false(self, config):
        session = ok_session()
        session.post.side_effect = requests.ConnectionError("refused")
        assert PubSubHubbubSubscriber(config, session=session).subscribe("UC123") is False


@pytest.mark.unit
class TestSubscribeAll:
    def test_counts_successful_requests(self, config, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/channel/UC_A")
        add_streamer("streamer-2", "https://youtube.com/@unresolved")
        add_streamer("streamer-3", "https://twitch.tv/carol", platform="twitch")
        session = ok_session()

        assert PubSubHubbubSubscriber(config, store, session=session).subscribe_all() == 1
        assert session.post.call_count == 1

    def test_without_store(self, config):
        assert PubSubHubbubSubscriber(config, session=ok_session()).subscribe_all() == 0
