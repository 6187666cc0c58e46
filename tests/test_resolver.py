"""
Unit tests for mapping channel ids to stored streamers.
"""

import pytest

from amwhub.core import constants
from amwhub.resolver import StreamerResolver, matches_directly
from amwhub.models import Streamer

from conftest import FakeAPIClient


@pytest.mark.unit
class TestMatchesDirectly:
    def test_channel_url(self):
        streamer = Streamer("s1", "A", "youtube", "https://youtube.com/channel/UC123")
        assert matches_directly(streamer, "UC123")
        assert not matches_directly(streamer, "UC999")

    def test_handle_equal_to_channel_id(self):
        streamer = Streamer("s1", "A", "youtube", "https://youtube.com/@UC123")
        assert matches_directly(streamer, "UC123")

    def test_cached_channel_id(self):
        streamer = Streamer("s1", "A", "youtube", "https://youtube.com/@alice", youtube_channel_id="UC123")
        assert matches_directly(streamer, "UC123")

    def test_unparseable_url(self):
        streamer = Streamer("s1", "A", "youtube", "not a url")
        assert not matches_directly(streamer, "UC123")


@pytest.mark.unit
class TestStreamerResolver:
    def test_direct_match_makes_no_remote_calls(self, store, add_streamer, metrics):
        add_streamer("streamer-1", "https://youtube.com/@alice")
        add_streamer("streamer-2", "https://youtube.com/channel/UC123")
        api = FakeAPIClient(channel_ids={"alice": "UC_ALICE"})

        resolver = StreamerResolver(store, api, metrics)

        assert resolver.resolve("UC123") == "streamer-2"
        assert api.resolve_calls == []
        assert metrics.get(constants.METRIC_RESOLVE_DIRECT) == 1

    def test_only_youtube_streamers_are_considered(self, store, add_streamer):
        add_streamer("streamer-1", "https://twitch.tv/UC123", platform="twitch")
        resolver = StreamerResolver(store, None)
        assert resolver.resolve("UC123") is None

    def test_ambiguous_direct_match_takes_first(self, store, add_streamer, caplog):
        add_streamer("streamer-1", "https://youtube.com/channel/UC123")
        add_streamer("streamer-2", "https://youtube.com/channel/UC123/videos")

        resolver = StreamerResolver(store, None)

        assert resolver.resolve("UC123") == "streamer-1"
        assert "matches 2 streamers" in caplog.text

    def test_remote_fallback(self, store, add_streamer, metrics):
        add_streamer("streamer-1", "https://youtube.com/@alice")
        add_streamer("streamer-2", "https://youtube.com/c/BobPlays")
        add_streamer("streamer-3", "https://youtube.com/user/carol")
        api = FakeAPIClient(channel_ids={"alice": "UC_ALICE", "BobPlays": "UC_BOB", "carol": "UC_CAROL"})

        resolver = StreamerResolver(store, api, metrics)

        assert resolver.resolve("UC_BOB") == "streamer-2"
        # Stops at the first match
        assert api.resolve_calls == ["alice", "BobPlays"]
        assert metrics.get(constants.METRIC_RESOLVE_REMOTE) == 1

    def test_remote_pass_skips_raw_channel_urls(self, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/channel/UC_OTHER")
        api = FakeAPIClient()

        assert StreamerResolver(store, api).resolve("UC123") is None
        assert api.resolve_calls == []

    def test_no_match_without_remote_lookup(self, store, add_streamer, metrics):
        add_streamer("streamer-1", "https://youtube.com/@alice")
        add_streamer("streamer-2", "https://youtube.com/@bob")

        resolver = StreamerResolver(store, None, metrics)

        assert resolver.resolve("UC123") is None
        assert metrics.get(constants.METRIC_RESOLVE_MISS) == 1
        assert all(not s.is_live for s in store.list_streamers())

    def test_no_match_when_remote_lookup_unavailable(self, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/@alice")
        api = FakeAPIClient(channel_ids={"alice": "UC123"}, available=False)

        assert StreamerResolver(store, api).resolve("UC123") is None
        assert api.resolve_calls == []

    def test_lookup_errors_are_skipped(self, store, add_streamer):
        add_streamer("streamer-1", "https://youtube.com/@broken")
        add_streamer("streamer-2", "https://youtube.com/@alice")

        class FlakyAPI(FakeAPIClient):
            def resolve_channel_id(self, identifier):
                if identifier == "broken":
                    raise RuntimeError("boom")
                return super().resolve_channel_id(identifier)

        api = FlakyAPI(channel_ids={"alice": "UC123"})
        assert StreamerResolver(store, api).resolve("UC123") == "streamer-2"
