"""
Tests for the Reference Range Registry & Versioning

Test Categories:
1. Classification (mineral buffer, raw ratio bounds, monotonicity)
2. Measurement helpers (normalization, ratios, display-only elements)
3. Registry authoring and activation
4. Version comparison and migration advice
5. Loader and usage stats
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from htma.errors import RangeConfigurationError, VersionNotFoundError
from htma.ranges.classify import (
    calculate_ratio,
    classify,
    has_required_minerals_for_ratios,
    measure_additional_elements,
    measure_minerals,
    measure_ratios,
    measure_toxic_elements,
    non_optimal_ratios,
    normalize_values,
)
from htma.ranges.models import (
    ImpactLevel,
    MeasurementStatus,
    MigrationSeverity,
    RangeChangeType,
    RangeKind,
    ToxicElementStatus,
)
from htma.ranges.registry import ReferenceRangeRegistry, load_range_file
from htma.ranges.versioning import (
    calculate_version_stats,
    compare_versions,
    detect_change_type,
    format_version_display,
    impact_counts,
    is_valid_version_id,
    should_migrate_analysis,
    validate_reference_range,
)


STATUS_RANK = {
    MeasurementStatus.LOW: 0,
    MeasurementStatus.OPTIMAL: 1,
    MeasurementStatus.HIGH: 2,
}


def _shifted_calcium(version, low=30.0, high=40.0):
    return [
        m.model_copy(update={"min_ideal": low, "max_ideal": high}) if m.symbol == "Ca" else m
        for m in version.mineral_ranges
    ]


# ============================================================
# CLASSIFICATION
# ============================================================

class TestClassification:
    """Minerals use the 0.7 / 1.3 buffer; ratios use raw bounds."""

    def test_calcium_50_is_optimal_inside_buffer(self):
        """Ca=50 exceeds the ideal max 45 but not 45 x 1.3 = 58.5"""
        assert classify(50, 35, 45, RangeKind.MINERAL) == MeasurementStatus.OPTIMAL

    def test_mineral_high_above_buffer(self):
        assert classify(58.6, 35, 45, RangeKind.MINERAL) == MeasurementStatus.HIGH
        assert classify(58.4, 35, 45, RangeKind.MINERAL) == MeasurementStatus.OPTIMAL

    def test_mineral_low_below_buffer(self):
        assert classify(24.4, 35, 45, RangeKind.MINERAL) == MeasurementStatus.LOW
        assert classify(24.6, 35, 45, RangeKind.MINERAL) == MeasurementStatus.OPTIMAL

    def test_ratio_uses_raw_bounds(self):
        assert classify(5.99, 6.0, 7.5, RangeKind.RATIO) == MeasurementStatus.LOW
        assert classify(6.0, 6.0, 7.5, RangeKind.RATIO) == MeasurementStatus.OPTIMAL
        assert classify(7.6, 6.0, 7.5, RangeKind.RATIO) == MeasurementStatus.HIGH

    def test_zero_ratio_is_low(self):
        assert classify(0, 0.0, 1.0, RangeKind.RATIO) == MeasurementStatus.LOW

    @pytest.mark.parametrize("kind", [RangeKind.MINERAL, RangeKind.RATIO])
    def test_monotonic_in_value(self, kind):
        """Increasing a value never moves its status back toward Low"""
        previous = None
        for step in range(0, 1201):
            status = classify(step / 10, 35, 45, kind)
            if previous is not None:
                assert STATUS_RANK[status] >= STATUS_RANK[previous]
            previous = status


# ============================================================
# MEASUREMENT HELPERS
# ============================================================

class TestMeasurement:

    def test_zero_denominator_ratio_is_zero(self):
        assert calculate_ratio(5.0, 0) == 0.0

    def test_normalize_maps_names_and_missing_to_zero(self):
        assert normalize_values({"calcium": 40, "Mg": None}) == {"Ca": 40.0, "Mg": 0.0}

    def test_measure_minerals_covers_table_in_display_order(self, version, optimal_values):
        minerals = measure_minerals(optimal_values, version)
        assert len(minerals) == 15
        assert minerals[0].symbol == "Ca"
        assert all(m.status == MeasurementStatus.OPTIMAL for m in minerals)

    def test_missing_minerals_read_as_zero(self, version):
        minerals = measure_minerals({}, version)
        assert all(m.value == 0.0 for m in minerals)
        assert all(m.status == MeasurementStatus.LOW for m in minerals)

    def test_measure_ratios_computes_from_minerals(self, version, optimal_values):
        ratios = {r.name: r for r in measure_ratios(optimal_values, version)}
        assert len(ratios) == 6
        assert ratios["Ca/Mg"].value == pytest.approx(40 / 6)
        assert all(r.status == MeasurementStatus.OPTIMAL for r in ratios.values())

    def test_supplied_ratio_takes_precedence(self, version, optimal_values):
        ratios = {r.name: r for r in measure_ratios(optimal_values, version, {"Ca/Mg": 12.0})}
        assert ratios["Ca/Mg"].value == 12.0
        assert ratios["Ca/Mg"].status == MeasurementStatus.HIGH

    def test_non_optimal_ratios(self, version, low_calcium_values):
        names = [r.name for r in non_optimal_ratios(low_calcium_values, version)]
        assert names == ["Ca/Mg", "Ca/P", "Ca/K"]

    def test_required_minerals_detects_absence(self, version, optimal_values):
        assert has_required_minerals_for_ratios(optimal_values, version)
        partial = {k: v for k, v in optimal_values.items() if k != "P"}
        assert not has_required_minerals_for_ratios(partial, version)

    def test_toxic_elements_only_reports_present(self, registry):
        elements = measure_toxic_elements({"Pb": 0.9, "Hg": 0.1}, registry.toxic_references)
        by_symbol = {e.symbol: e for e in elements}
        assert set(by_symbol) == {"Pb", "Hg"}
        assert by_symbol["Pb"].status == ToxicElementStatus.ELEVATED
        assert by_symbol["Hg"].status == ToxicElementStatus.WITHIN

    def test_additional_elements_detected_flag(self, registry):
        symbol = registry.additional_references[0].symbol
        elements = measure_additional_elements({symbol: 0}, registry.additional_references)
        assert len(elements) == 1
        assert elements[0].detected is False


# ============================================================
# REGISTRY
# ============================================================

class TestRegistry:

    def test_default_registry_has_active_initial_version(self, registry):
        active = registry.active()
        assert active.version == "1.0.0"
        assert active.is_active
        assert len(active.mineral_ranges) == 15
        assert len(active.ratio_ranges) == 6

    def test_new_version_is_created_inactive(self, registry, version):
        created = registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version), supersedes="1.0.0")
        assert created.is_active is False
        assert registry.active().version == "1.0.0"

    def test_new_version_inherits_ratio_ranges(self, registry, version):
        created = registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        assert created.ratio_ranges == version.ratio_ranges

    def test_activation_swaps_single_active_version(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version), supersedes="1.0.0")
        activated = registry.activate("1.1.0")

        assert activated.is_active
        assert registry.active().version == "1.1.0"
        previous = registry.get("1.0.0")
        assert previous.is_active is False
        assert previous.deprecated_at is not None
        assert sum(1 for v in registry.versions() if v.is_active) == 1

    def test_activation_never_edits_existing_records(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        registry.activate("1.1.0")
        assert version.is_active is True
        assert version.deprecated_at is None

    def test_concurrent_activation_keeps_one_active(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        registry.create_version("1.2.0", "Shifted Ca again", _shifted_calcium(version, 31.0, 41.0))

        def flip(version_id):
            for _ in range(50):
                registry.activate(version_id)

        threads = [threading.Thread(target=flip, args=(vid,)) for vid in ("1.0.0", "1.1.0", "1.2.0")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        active = [v for v in registry.versions() if v.is_active]
        assert len(active) == 1
        assert registry.active().version == active[0].version

    def test_duplicate_version_rejected(self, registry, version):
        with pytest.raises(RangeConfigurationError):
            registry.create_version("1.0.0", "Duplicate", version.mineral_ranges)

    def test_invalid_version_id_rejected(self, registry, version):
        with pytest.raises(RangeConfigurationError):
            registry.create_version("1.1", "Bad id", version.mineral_ranges)

    def test_inverted_range_rejected(self, registry, version):
        with pytest.raises(RangeConfigurationError):
            registry.create_version("1.1.0", "Inverted", _shifted_calcium(version, 50.0, 40.0))

    def test_unknown_supersedes_rejected(self, registry, version):
        with pytest.raises(RangeConfigurationError):
            registry.create_version("1.1.0", "Orphan", version.mineral_ranges, supersedes="0.9.0")

    def test_unknown_version_lookup(self, registry):
        with pytest.raises(VersionNotFoundError):
            registry.get("9.9.9")
        with pytest.raises(KeyError):
            registry.activate("9.9.9")

    def test_resolve_without_active_version(self):
        with pytest.raises(RangeConfigurationError):
            ReferenceRangeRegistry().resolve()

    def test_deprecating_active_clears_pointer(self, registry):
        registry.deprecate("1.0.0")
        assert registry.active() is None
        assert registry.get("1.0.0").deprecated_at is not None

    def test_history_follows_supersedes_chain(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version), supersedes="1.0.0")
        assert [v.version for v in registry.history("1.1.0")] == ["1.1.0", "1.0.0"]

    def test_activate_effective_picks_newest_reached(self, registry, version):
        now = datetime.now(timezone.utc)
        registry.create_version("1.1.0", "Past", _shifted_calcium(version), effective_date=now - timedelta(days=1))
        registry.create_version("2.0.0", "Future", _shifted_calcium(version), effective_date=now + timedelta(days=30))
        activated = registry.activate_effective(now)
        assert activated.version == "1.1.0"

    def test_naive_dates_are_taken_as_utc(self, registry, version):
        created = registry.create_version(
            "1.1.0", "Naive", _shifted_calcium(version), effective_date=datetime(2026, 1, 1)
        )
        assert created.effective_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert [v.version for v in registry.versions()] == ["1.1.0", "1.0.0"]

        activated = registry.activate_effective(datetime(2026, 6, 1))
        assert activated.version == "1.1.0"
        assert registry.get("1.0.0").deprecated_at == datetime(2026, 6, 1, tzinfo=timezone.utc)

    def test_aware_dates_are_converted_to_utc(self, registry, version):
        plus_two = timezone(timedelta(hours=2))
        created = registry.create_version(
            "1.1.0", "Offset", _shifted_calcium(version), effective_date=datetime(2026, 1, 1, 2, tzinfo=plus_two)
        )
        assert created.effective_date.utcoffset() == timedelta(0)
        assert created.effective_date == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_display_format(self, version):
        assert format_version_display(version) == f"{version.name} (v1.0.0) - Active"


# ============================================================
# COMPARISON / MIGRATION
# ============================================================

class TestVersioning:

    def test_semver_validation(self):
        assert is_valid_version_id("1.2.3")
        assert not is_valid_version_id("1.2")
        assert not is_valid_version_id("v1.2.3")

    def test_reference_range_validation(self):
        assert validate_reference_range(1, 2) == (True, None)
        assert validate_reference_range(2, 1)[0] is False
        assert validate_reference_range(-1, 2)[0] is False

    def test_compare_identical_versions(self, version):
        comparison = compare_versions(version, version)
        assert comparison.total_changes == 0
        assert comparison.minerals_changed == ()
        assert comparison.summary == "No changes to reference ranges"

    def test_identical_versions_never_migrate(self, version, optimal_values):
        recommendation = should_migrate_analysis(version, version, optimal_values)
        assert recommendation.should_migrate is False
        assert recommendation.reason == "No changes between versions"

    def test_compare_shifted_calcium(self, registry, version):
        new = registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        comparison = compare_versions(version, new)

        assert comparison.total_changes == 1
        assert comparison.minerals_changed == ("Ca",)
        ca = comparison.changes[0]
        assert ca.symbol == "Ca"
        assert ca.impact_level == ImpactLevel.MODERATE
        assert ca.min_change == -5.0
        assert comparison.summary == "1 total change: 1 moderate change"
        assert impact_counts(comparison)["moderate"] == 1

    def test_removed_mineral_is_major(self, registry, version):
        without_sulfur = [m for m in version.mineral_ranges if m.symbol != "S"]
        new = registry.create_version("1.1.0", "No sulfur", without_sulfur)
        comparison = compare_versions(version, new)
        assert comparison.changes[0].symbol == "S"
        assert comparison.changes[0].impact_level == ImpactLevel.MAJOR

    def test_migration_when_status_flips(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        registry.activate("1.1.0")

        recommendation = should_migrate_analysis(
            registry.get("1.0.0"), registry.get("1.1.0"), {"Ca": 42.0, "Mg": 6.0}
        )
        assert recommendation.should_migrate is True
        assert recommendation.affected_minerals == ("Ca",)
        assert recommendation.severity == MigrationSeverity.HIGH
        assert recommendation.reason == "1 mineral would change status with updated ranges"

    def test_migration_accepts_full_mineral_names(self, registry, version):
        registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        registry.activate("1.1.0")

        recommendation = should_migrate_analysis(
            registry.get("1.0.0"), registry.get("1.1.0"), {"calcium": 42.0, "magnesium": 6.0}
        )
        assert recommendation.affected_minerals == ("Ca",)
        assert recommendation.severity == MigrationSeverity.HIGH

    def test_no_migration_while_current_is_active(self, registry, version):
        target = registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        recommendation = should_migrate_analysis(version, target, {"Ca": 42.0})
        assert recommendation.should_migrate is False
        assert recommendation.reason == "Current version is still active"

    def test_migration_with_no_values(self, registry, version):
        target = registry.create_version("1.1.0", "Shifted Ca", _shifted_calcium(version))
        recommendation = should_migrate_analysis(version, target, {})
        assert recommendation.status_changes == 0
        assert recommendation.severity == MigrationSeverity.LOW

    @pytest.mark.parametrize("old,new,expected", [
        ((35, 45), (40, 45), RangeChangeType.MIN_INCREASED),
        ((35, 45), (35, 50), RangeChangeType.MAX_INCREASED),
        ((35, 45), (30, 50), RangeChangeType.RANGE_WIDENED),
        ((35, 45), (38, 42), RangeChangeType.RANGE_NARROWED),
        ((35, 45), (30, 40), RangeChangeType.RANGE_SHIFTED),
    ])
    def test_detect_change_type(self, old, new, expected):
        assert detect_change_type(old[0], old[1], new[0], new[1]) == expected


# ============================================================
# LOADER / STATS
# ============================================================

class TestLoaderAndStats:

    def test_missing_range_file_is_fatal(self, tmp_path):
        with pytest.raises(RangeConfigurationError):
            load_range_file(tmp_path / "missing.json")

    def test_stale_version_recommends_migration(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        analyses = [
            {"version": "1.0.0", "timestamp": "2025-08-01T00:00:00Z"},
            {"version": "1.0.0", "timestamp": "2025-09-01T00:00:00Z"},
            {"version": "1.1.0", "timestamp": "2025-12-30T00:00:00Z"},
        ]
        stats = calculate_version_stats("1.0.0", analyses, now=now)
        assert stats.analysis_count == 2
        assert stats.migration_recommended is True

    def test_unused_version_stats(self):
        stats = calculate_version_stats("2.0.0", [])
        assert stats.analysis_count == 0
        assert stats.last_used is None
