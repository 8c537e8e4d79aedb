"""
Closed vocabulary of ETL action tags that can be attached to an edge.

An action is a label describing an intended transform step; nothing here
executes it.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple


class EtlAction(str, Enum):
    """Every action tag an edge may carry."""

    # Common
    AGGREGATE = "aggregate"
    BALANCED = "balanced"
    CONDITIONAL = "conditional"
    CONVERT = "convert"
    DERIVED = "derived"
    LOOKUP = "lookup"
    MERGE = "merge"
    MERGE_JOIN = "mergeJoin"
    MULTICAST = "multicast"
    ROW_COUNT = "rowCount"
    SCRIPT = "script"
    SCD = "scd"
    SORT = "sort"
    UNION = "union"
    # Other transforms
    COPY_COLUMN = "copyColumn"
    PIVOT = "pivot"
    UNPIVOT = "unpivot"
    AUDIT = "audit"
    CHARACTER_MAP = "characterMap"
    PERCENTAGE_SAMPLING = "percentageSampling"
    ROW_SAMPLING = "rowSampling"
    IMPORT_COLUMN = "importColumn"
    EXPORT_COLUMN = "exportColumn"
    FUZZY_LOOKUP = "fuzzyLookup"
    FUZZY_GROUPING = "fuzzyGrouping"
    # IO
    SOURCE = "source"
    DESTINATION = "destination"


ACTION_LABELS: Dict[EtlAction, str] = {
    EtlAction.AGGREGATE: "Aggregate",
    EtlAction.BALANCED: "Balanced",
    EtlAction.CONDITIONAL: "Conditional",
    EtlAction.CONVERT: "Convert",
    EtlAction.DERIVED: "Derived",
    EtlAction.LOOKUP: "Lookup",
    EtlAction.MERGE: "Merge",
    EtlAction.MERGE_JOIN: "Merge Join",
    EtlAction.MULTICAST: "Multicast",
    EtlAction.ROW_COUNT: "Row Count",
    EtlAction.SCRIPT: "Script",
    EtlAction.SCD: "SCD",
    EtlAction.SORT: "Sort",
    EtlAction.UNION: "Union",
    EtlAction.COPY_COLUMN: "Copy Column",
    EtlAction.PIVOT: "Pivot",
    EtlAction.UNPIVOT: "Unpivot",
    EtlAction.AUDIT: "Audit",
    EtlAction.CHARACTER_MAP: "Char Map",
    EtlAction.PERCENTAGE_SAMPLING: "Sampling %",
    EtlAction.ROW_SAMPLING: "Row Sampling",
    EtlAction.IMPORT_COLUMN: "Import Col",
    EtlAction.EXPORT_COLUMN: "Export Col",
    EtlAction.FUZZY_LOOKUP: "Fuzzy Lookup",
    EtlAction.FUZZY_GROUPING: "Fuzzy Group",
    EtlAction.SOURCE: "Source",
    EtlAction.DESTINATION: "Destination",
}

# Actions offered on the palette; only these are accepted from a drop.
PALETTE_ACTIONS: Tuple[EtlAction, ...] = (
    EtlAction.AGGREGATE,
    EtlAction.CONDITIONAL,
    EtlAction.CONVERT,
    EtlAction.DERIVED,
    EtlAction.LOOKUP,
    EtlAction.MERGE,
    EtlAction.MERGE_JOIN,
    EtlAction.MULTICAST,
    EtlAction.ROW_COUNT,
    EtlAction.SCRIPT,
    EtlAction.SCD,
    EtlAction.SORT,
    EtlAction.UNION,
)

PALETTE_GROUPS: Tuple[Tuple[str, Tuple[EtlAction, ...]], ...] = (
    (
        "Transform",
        (
            EtlAction.AGGREGATE,
            EtlAction.DERIVED,
            EtlAction.LOOKUP,
            EtlAction.CONDITIONAL,
            EtlAction.SORT,
        ),
    ),
    (
        "Merge & Flow",
        (
            EtlAction.MERGE,
            EtlAction.MERGE_JOIN,
            EtlAction.UNION,
            EtlAction.MULTICAST,
        ),
    ),
    (
        "Utility",
        (
            EtlAction.CONVERT,
            EtlAction.ROW_COUNT,
            EtlAction.SCRIPT,
            EtlAction.SCD,
        ),
    ),
)

_SNAKE_CASE_ALIASES: Dict[str, EtlAction] = {
    "merge_join": EtlAction.MERGE_JOIN,
    "row_count": EtlAction.ROW_COUNT,
    "copy_column": EtlAction.COPY_COLUMN,
    "character_map": EtlAction.CHARACTER_MAP,
    "percentage_sampling": EtlAction.PERCENTAGE_SAMPLING,
    "row_sampling": EtlAction.ROW_SAMPLING,
    "fuzzy_lookup": EtlAction.FUZZY_LOOKUP,
    "fuzzy_grouping": EtlAction.FUZZY_GROUPING,
    "import_column": EtlAction.IMPORT_COLUMN,
    "export_column": EtlAction.EXPORT_COLUMN,
}


def normalize_action(raw: Optional[str]) -> Optional[EtlAction]:
    """Resolve a raw tag (camelCase or snake_case) to an action, or None."""
    if not raw or not isinstance(raw, str):
        return None
    raw = raw.strip()
    if raw in _SNAKE_CASE_ALIASES:
        return _SNAKE_CASE_ALIASES[raw]
    try:
        return EtlAction(raw)
    except ValueError:
        return None


def normalize_palette_action(raw: Optional[str]) -> Optional[EtlAction]:
    """Like normalize_action, but only accepts actions shown on the palette."""
    action = normalize_action(raw)
    if action is None or action not in PALETTE_ACTIONS:
        return None
    return action


def get_action_label(action: EtlAction) -> str:
    return ACTION_LABELS.get(action, action.value)


def palette_payload() -> List[Dict[str, object]]:
    """Palette groups serialized for the front end."""
    return [
        {
            "label": label,
            "actions": [
                {"action": action.value, "label": get_action_label(action)}
                for action in actions
            ],
        }
        for label, actions in PALETTE_GROUPS
    ]
