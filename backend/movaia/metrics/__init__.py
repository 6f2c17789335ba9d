from .rules import MetricRange, RuleTable, get_rule_table
from .classification import Classification, classify_csv, classify_value

__all__ = [
    "MetricRange",
    "RuleTable",
    "get_rule_table",
    "Classification",
    "classify_csv",
    "classify_value",
]
