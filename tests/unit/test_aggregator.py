"""
Tests for origin_tracker.aggregator module.
"""
from origin_tracker.aggregator import (
    Aggregator,
    apply_fb_ads_bonus,
    bucket_count,
    group_labels,
    to_buckets,
    total_orders,
)
from origin_tracker.models import (
    AttributionRecord,
    StorageScheme,
    UTMFilters,
    FB_ADS_LABEL,
    INSTAGRAM_LABEL,
    DIRECT_LABEL,
)


class TestHelpers:
    """Tests for the grouping helpers."""

    def test_group_labels_counts(self):
        assert group_labels(["a", "b", "a"]) == {"a": 2, "b": 1}

    def test_bonus_only_when_bucket_exists(self):
        """The bonus never creates an FB ADS bucket."""
        assert apply_fb_ads_bonus({"Direct": 3}, 2) == {"Direct": 3}
        assert apply_fb_ads_bonus({FB_ADS_LABEL: 1}, 2) == {FB_ADS_LABEL: 3}

    def test_to_buckets_sorted_stable(self):
        """Descending by count; ties keep first-seen order."""
        buckets = to_buckets({"x": 1, "y": 3, "z": 1})
        assert [b.label for b in buckets] == ["y", "x", "z"]

    def test_bucket_count_missing(self):
        assert bucket_count([], FB_ADS_LABEL) == 0


class TestAggregate:
    """Tests for Aggregator.aggregate (standard path)."""

    def test_buckets_with_bonus(self, sample_records):
        """FB ADS gets +2 on top of its two orders."""
        buckets = Aggregator(fb_ads_bonus=2).aggregate(sample_records, StorageScheme.POST_META)

        assert buckets[0].label == FB_ADS_LABEL
        assert buckets[0].order_count == 4
        assert bucket_count(buckets, INSTAGRAM_LABEL) == 1
        assert bucket_count(buckets, DIRECT_LABEL) == 1
        assert bucket_count(buckets, "UTM: google / organic") == 1
        assert bucket_count(buckets, "UTM: newsletter / email") == 1

    def test_total_includes_bonus_once(self, sample_records):
        """Bucket total equals input size plus the bonus."""
        buckets = Aggregator(fb_ads_bonus=2).aggregate(sample_records, StorageScheme.POST_META)
        assert total_orders(buckets) == len(sample_records) + 2

    def test_total_without_facebook(self):
        """Without FB ADS orders, totals match the input exactly."""
        records = [
            AttributionRecord(order_id=1, utm_source="google"),
            AttributionRecord(order_id=2),
        ]
        buckets = Aggregator(fb_ads_bonus=2).aggregate(records, StorageScheme.POST_META)
        assert total_orders(buckets) == 2
        assert bucket_count(buckets, FB_ADS_LABEL) == 0

    def test_empty_input(self):
        assert Aggregator().aggregate([], StorageScheme.POST_META) == []

    def test_empty_filters_are_noop(self, sample_records):
        aggregator = Aggregator(fb_ads_bonus=0)
        unfiltered = aggregator.aggregate(sample_records, StorageScheme.POST_META)
        filtered = aggregator.aggregate(sample_records, StorageScheme.POST_META, UTMFilters())
        assert [b.to_dict() for b in filtered] == [b.to_dict() for b in unfiltered]

    def test_filters_restrict_records(self, sample_records):
        buckets = Aggregator(fb_ads_bonus=2).aggregate(
            sample_records, StorageScheme.POST_META, UTMFilters(sources=["facebook"])
        )
        assert [b.to_dict() for b in buckets] == [{"origin": FB_ADS_LABEL, "order_count": 3}]

    def test_filters_matching_nothing(self, sample_records):
        buckets = Aggregator().aggregate(
            sample_records, StorageScheme.POST_META, UTMFilters(sources=["tiktok"])
        )
        assert buckets == []

    def test_legacy_scheme_uses_origin(self):
        records = [
            AttributionRecord(order_id=1, origin="UTM: facebook / paid"),
            AttributionRecord(order_id=2, origin="Referral: blog.example"),
            AttributionRecord(order_id=3),
        ]
        buckets = Aggregator(fb_ads_bonus=0).aggregate(records, StorageScheme.LEGACY_ORIGIN)
        assert {b.label: b.order_count for b in buckets} == {
            FB_ADS_LABEL: 1,
            "Referral: blog.example": 1,
            DIRECT_LABEL: 1,
        }


class TestAggregateToday:
    """Tests for Aggregator.aggregate_today."""

    def test_orders_without_attribution_are_direct(self):
        """Every order of the day is counted, untracked ones as Direct."""
        records = [AttributionRecord(order_id=i) for i in range(1, 4)]
        buckets = Aggregator().aggregate_today(records)
        assert [b.to_dict() for b in buckets] == [{"origin": DIRECT_LABEL, "order_count": 3}]

    def test_mixed_signals(self):
        records = [
            AttributionRecord(order_id=1, source_type="utm", utm_source="facebook", utm_medium="cpc"),
            AttributionRecord(order_id=2, utm_source="instagram"),
            AttributionRecord(order_id=3, origin="Referral: blog.example"),
            AttributionRecord(order_id=4),
        ]
        buckets = Aggregator(fb_ads_bonus=2).aggregate_today(records)
        assert bucket_count(buckets, FB_ADS_LABEL) == 3
        assert bucket_count(buckets, INSTAGRAM_LABEL) == 1
        assert bucket_count(buckets, "Referral: blog.example") == 1
        assert bucket_count(buckets, DIRECT_LABEL) == 1
        assert total_orders(buckets) == len(records) + 2
