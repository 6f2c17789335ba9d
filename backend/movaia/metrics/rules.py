"""Versioned metric-range tables.

Two tables ship and are deliberately kept apart: ``classification-v1`` drives
the ideal/workable/check tallies on analysis listings, ``report-v1`` drives the
per-value colouring of the exported report. They disagree on several bounds
(step_rate, ground_contact_time units, msa, lean, col_pelvic_drop, ...) and
product has not confirmed which numbers are authoritative.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MetricRange:
    workable: tuple[float, float]
    ideal: tuple[float, float] | None = None


@dataclass(frozen=True)
class RuleTable:
    version: str
    ranges: dict[str, MetricRange] = field(default_factory=dict)

    def __contains__(self, metric: str) -> bool:
        return metric in self.ranges

    def get(self, metric: str) -> MetricRange | None:
        return self.ranges.get(metric)

    def metrics(self) -> list[str]:
        return list(self.ranges)


def _both_sides(
    name: str,
    workable: tuple[float, float],
    ideal: tuple[float, float] | None = None,
) -> dict[str, MetricRange]:
    rng = MetricRange(workable=workable, ideal=ideal)
    return {f"{name}-l": rng, f"{name}-r": rng}


CLASSIFICATION_V1 = RuleTable(
    version="classification-v1",
    ranges={
        **_both_sides("msa", (8, 30)),
        **_both_sides("sat", (0, 10), ideal=(1, 7)),
        **_both_sides("sweep", (4, 25)),
        "step_rate": MetricRange(workable=(154, 192), ideal=(163, 184)),
        **_both_sides("golden_ratio", (0.65, 0.80), ideal=(0.70, 0.75)),
        **_both_sides("fat", (-15, 15), ideal=(-5, 5)),
        **_both_sides("lean", (2, 8), ideal=(3, 6)),
        **_both_sides("arm_angle", (40, 90), ideal=(45, 80)),
        **_both_sides("arm_movement_back", (-2, 2)),
        **_both_sides("arm_movement_forward", (-2, 2)),
        **_both_sides("posture", (-15, 25), ideal=(-2, 10)),
        **_both_sides("ground_contact_time", (0.20, 0.30), ideal=(0, 0.20)),
        **_both_sides("vertical_osc", (0.025, 0.060)),
        **_both_sides("step_width", (0.4, 1.0)),
        **_both_sides("col_pelvic_drop", (4, 6), ideal=(2, 4)),
    },
)

# ground_contact_time is in milliseconds here, seconds above.
REPORT_V1 = RuleTable(
    version="report-v1",
    ranges={
        "step_rate": MetricRange(workable=(154, 192), ideal=(170, 180)),
        **_both_sides("ground_contact_time", (250, 300), ideal=(0, 250)),
        **_both_sides("fat", (-15, 15), ideal=(-5, 15)),
        **_both_sides("sat", (0, 10), ideal=(5, 10)),
        **_both_sides("msa", (85, 95)),
        **_both_sides("lean", (2, 15), ideal=(5, 10)),
        **_both_sides("posture", (-15, 25), ideal=(-2, 10)),
        **_both_sides("col_pelvic_drop", (0, 5)),
        **_both_sides("arm_angle", (40, 90), ideal=(45, 80)),
    },
)

RULE_TABLES: dict[str, RuleTable] = {
    CLASSIFICATION_V1.version: CLASSIFICATION_V1,
    REPORT_V1.version: REPORT_V1,
}


def get_rule_table(version: str) -> RuleTable:
    try:
        return RULE_TABLES[version]
    except KeyError:
        raise ValueError(
            f"Unknown metric rule table {version!r}. Known: {', '.join(sorted(RULE_TABLES))}"
        ) from None
