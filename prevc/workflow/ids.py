"""ID generation for workflow records.

Two ID types are generated:
- HO-XXX: Handoffs
- DEC-XXX: Plan decisions

IDs are sequential within each type (001, 002, 003, etc.).
"""

from prevc.config import DECISION_ID_PREFIX, HANDOFF_ID_PREFIX


def _next_id(prefix: str, existing_ids: list[str]) -> str:
    """Generate next sequential ID with given prefix.

    Args:
        prefix: The ID prefix (HO or DEC)
        existing_ids: List of existing IDs to find the max from

    Returns:
        Next ID in format PREFIX-XXX (e.g., HO-001, DEC-002)
    """
    max_num = 0
    for id_str in existing_ids:
        if id_str.startswith(f"{prefix}-"):
            try:
                num = int(id_str.split("-")[1])
                max_num = max(max_num, num)
            except (IndexError, ValueError):
                continue
    return f"{prefix}-{max_num + 1:03d}"


def next_handoff_id(existing_ids: list[str]) -> str:
    return _next_id(HANDOFF_ID_PREFIX, existing_ids)


def next_decision_id(existing_ids: list[str]) -> str:
    return _next_id(DECISION_ID_PREFIX, existing_ids)
