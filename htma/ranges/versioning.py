"""
Reference Range Versioning
==========================
Pure functions over ReferenceRangeVersion records: validation, comparison,
migration advice, and usage statistics.

Impact levels (largest relative boundary move):
- major     >= 20%, or a symbol added/removed
- moderate  10% - 20%
- minor     < 10%

Migration is recommended only if the target is active, the current version
is not, and at least one supplied value would change status.

Version: ranges_v1
"""

import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .classify import normalize_values
from .models import (
    ImpactLevel,
    MeasurementStatus,
    MigrationRecommendation,
    MigrationSeverity,
    MineralComparison,
    RangeChangeImpact,
    RangeChangeType,
    RangeKind,
    RangeVersionStats,
    ReferenceRangeVersion,
    VersionComparison,
)

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

MAJOR_CHANGE_PERCENT = 20.0
MODERATE_CHANGE_PERCENT = 10.0
HIGH_SEVERITY_RATE = 0.3
MEDIUM_SEVERITY_RATE = 0.1
STALE_VERSION_DAYS = 90

_IMPACT_RANK = {
    ImpactLevel.MAJOR: 0,
    ImpactLevel.MODERATE: 1,
    ImpactLevel.MINOR: 2,
    ImpactLevel.NONE: 3,
}
_KIND_RANK = {RangeKind.MINERAL: 0, RangeKind.RATIO: 1}


# ============================================================
# VALIDATION
# ============================================================

def is_valid_version_id(version_id: str) -> bool:
    return bool(SEMVER_PATTERN.match(version_id or ""))


def validate_reference_range(min_ideal: float, max_ideal: float) -> Tuple[bool, Optional[str]]:
    """Returns (valid, error)."""
    if min_ideal >= max_ideal:
        return False, "Minimum value must be less than maximum value"
    if min_ideal < 0 or max_ideal < 0:
        return False, "Range values must be non-negative"
    return True, None


def format_version_display(version: ReferenceRangeVersion) -> str:
    if version.is_active:
        status = "Active"
    elif version.deprecated_at:
        status = "Deprecated"
    else:
        status = "Inactive"
    return f"{version.name} (v{version.version}) - {status}"


def format_effective_date(value: datetime) -> str:
    """e.g. "January 1, 2025"."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


# ============================================================
# COMPARISON
# ============================================================

def _percent_change(old: float, new: float) -> float:
    if old == 0:
        return 0.0 if new == 0 else 100.0
    return (new - old) / old * 100


def _impact_for(min_pct: float, max_pct: float) -> ImpactLevel:
    largest = max(abs(min_pct), abs(max_pct))
    if largest >= MAJOR_CHANGE_PERCENT:
        return ImpactLevel.MAJOR
    if largest >= MODERATE_CHANGE_PERCENT:
        return ImpactLevel.MODERATE
    return ImpactLevel.MINOR


def _compare_tables(
    old_table: Mapping[str, Tuple[str, float, float]],
    new_table: Mapping[str, Tuple[str, float, float]],
    kind: RangeKind,
) -> List[MineralComparison]:
    comparisons = []
    for key, (name, new_min, new_max) in new_table.items():
        if key not in old_table:
            comparisons.append(MineralComparison(
                symbol=key, name=name, kind=kind, changed=True,
                new_min=new_min, new_max=new_max,
                impact_level=ImpactLevel.MAJOR,
            ))
            continue

        _, old_min, old_max = old_table[key]
        min_changed = old_min != new_min
        max_changed = old_max != new_max
        if not (min_changed or max_changed):
            comparisons.append(MineralComparison(
                symbol=key, name=name, kind=kind, changed=False,
                impact_level=ImpactLevel.NONE,
            ))
            continue

        min_pct = _percent_change(old_min, new_min) if min_changed else 0.0
        max_pct = _percent_change(old_max, new_max) if max_changed else 0.0
        comparisons.append(MineralComparison(
            symbol=key, name=name, kind=kind, changed=True,
            old_min=old_min, new_min=new_min,
            old_max=old_max, new_max=new_max,
            min_change=new_min - old_min if min_changed else 0.0,
            max_change=new_max - old_max if max_changed else 0.0,
            min_change_percent=min_pct,
            max_change_percent=max_pct,
            impact_level=_impact_for(min_pct, max_pct),
        ))

    for key, (name, old_min, old_max) in old_table.items():
        if key not in new_table:
            comparisons.append(MineralComparison(
                symbol=key, name=name, kind=kind, changed=True,
                old_min=old_min, old_max=old_max,
                impact_level=ImpactLevel.MAJOR,
            ))
    return comparisons


def _summarize(changes: Sequence[MineralComparison]) -> str:
    changed = [c for c in changes if c.changed]
    if not changed:
        return "No changes to reference ranges"

    parts = []
    for level in (ImpactLevel.MAJOR, ImpactLevel.MODERATE, ImpactLevel.MINOR):
        count = sum(1 for c in changed if c.impact_level == level)
        if count:
            parts.append(f"{count} {level.value} change{'s' if count > 1 else ''}")
    total = len(changed)
    return f"{total} total change{'s' if total > 1 else ''}: {', '.join(parts)}"


def compare_versions(old: ReferenceRangeVersion, new: ReferenceRangeVersion) -> VersionComparison:
    """
    Compare two range tables symbol by symbol (minerals, then ratios).

    Changes are ordered by impact (major first), then kind, then symbol.
    """
    comparisons = _compare_tables(
        {r.symbol: (r.name, r.min_ideal, r.max_ideal) for r in old.mineral_ranges},
        {r.symbol: (r.name, r.min_ideal, r.max_ideal) for r in new.mineral_ranges},
        RangeKind.MINERAL,
    )
    comparisons += _compare_tables(
        {r.name: (r.name, r.min_ideal, r.max_ideal) for r in old.ratio_ranges},
        {r.name: (r.name, r.min_ideal, r.max_ideal) for r in new.ratio_ranges},
        RangeKind.RATIO,
    )
    comparisons.sort(key=lambda c: (_IMPACT_RANK[c.impact_level], _KIND_RANK[c.kind], c.symbol))
    changed = tuple(c.symbol for c in comparisons if c.changed)

    return VersionComparison(
        from_version=old.version,
        to_version=new.version,
        total_changes=len(changed),
        minerals_changed=changed,
        changes=tuple(comparisons),
        summary=_summarize(comparisons),
    )


def detect_change_type(
    old_min: float,
    old_max: float,
    new_min: float,
    new_max: float,
) -> RangeChangeType:
    min_changed = old_min != new_min
    max_changed = old_max != new_max

    if min_changed and not max_changed:
        return RangeChangeType.MIN_INCREASED if new_min > old_min else RangeChangeType.MIN_DECREASED
    if max_changed and not min_changed:
        return RangeChangeType.MAX_INCREASED if new_max > old_max else RangeChangeType.MAX_DECREASED

    old_width = old_max - old_min
    new_width = new_max - new_min
    if new_width > old_width:
        return RangeChangeType.RANGE_WIDENED
    if new_width < old_width:
        return RangeChangeType.RANGE_NARROWED
    return RangeChangeType.RANGE_SHIFTED


# ============================================================
# MIGRATION
# ============================================================

def _raw_status(value: float, min_ideal: float, max_ideal: float) -> MeasurementStatus:
    if value < min_ideal:
        return MeasurementStatus.LOW
    if value > max_ideal:
        return MeasurementStatus.HIGH
    return MeasurementStatus.OPTIMAL


def analyze_range_change_impact(
    mineral_symbol: str,
    value: float,
    old_min: float,
    old_max: float,
    new_min: float,
    new_max: float,
) -> RangeChangeImpact:
    """Status flip under unscaled ideal bounds."""
    old_status = _raw_status(value, old_min, old_max)
    new_status = _raw_status(value, new_min, new_max)
    changed = old_status != new_status

    if changed:
        description = (
            f"Status changed from {old_status.value.lower()} to {new_status.value.lower()} "
            "due to updated reference ranges"
        )
    else:
        description = f"Status remains {old_status.value.lower()} under both versions"

    return RangeChangeImpact(
        mineral_symbol=mineral_symbol,
        value=value,
        old_status=old_status,
        new_status=new_status,
        status_changed=changed,
        impact_description=description,
    )


def should_migrate_analysis(
    current: ReferenceRangeVersion,
    target: ReferenceRangeVersion,
    values: Mapping[str, float],
) -> MigrationRecommendation:
    comparison = compare_versions(current, target)
    if comparison.total_changes == 0:
        return MigrationRecommendation(
            should_migrate=False,
            reason="No changes between versions",
        )

    values = normalize_values(values)
    affected = []
    for symbol, value in values.items():
        old_rng = current.mineral(symbol)
        new_rng = target.mineral(symbol)
        if old_rng is None or new_rng is None:
            continue
        impact = analyze_range_change_impact(
            symbol, value,
            old_rng.min_ideal, old_rng.max_ideal,
            new_rng.min_ideal, new_rng.max_ideal,
        )
        if impact.status_changed:
            affected.append(symbol)

    status_changes = len(affected)
    rate = status_changes / len(values) if values else 0.0
    if rate >= HIGH_SEVERITY_RATE:
        severity = MigrationSeverity.HIGH
    elif rate >= MEDIUM_SEVERITY_RATE:
        severity = MigrationSeverity.MEDIUM
    else:
        severity = MigrationSeverity.LOW

    should_migrate = status_changes > 0 and target.is_active and not current.is_active
    if should_migrate:
        reason = f"{status_changes} mineral{'s' if status_changes > 1 else ''} would change status with updated ranges"
    elif current.is_active:
        reason = "Current version is still active"
    else:
        reason = "No significant impact from version change"

    return MigrationRecommendation(
        should_migrate=should_migrate,
        reason=reason,
        affected_minerals=tuple(affected),
        status_changes=status_changes,
        severity=severity,
    )


# ============================================================
# USAGE STATS
# ============================================================

def calculate_version_stats(
    version: str,
    analyses: Iterable[Mapping[str, object]],
    now: Optional[datetime] = None,
) -> RangeVersionStats:
    """
    analyses: records with "version" and "timestamp" (datetime or ISO string).

    Migration is recommended when the version was last used > 90 days ago.
    """
    stamps: List[datetime] = []
    for record in analyses:
        if record.get("version") != version:
            continue
        ts = record.get("timestamp")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        stamps.append(ts)

    if not stamps:
        return RangeVersionStats(version=version, analysis_count=0)

    stamps.sort()
    now = now or datetime.now(timezone.utc)
    days_since = (now - stamps[-1]).total_seconds() / 86400

    return RangeVersionStats(
        version=version,
        analysis_count=len(stamps),
        first_used=stamps[0],
        last_used=stamps[-1],
        migration_recommended=days_since > STALE_VERSION_DAYS,
    )


def impact_counts(comparison: VersionComparison) -> Dict[str, int]:
    return {
        level.value: sum(1 for c in comparison.changes if c.impact_level == level)
        for level in ImpactLevel
    }
