from prometheus_client import Counter

TRANSITIONS_TOTAL = Counter(
    "oficri_document_transitions_total",
    "Document transitions attempted, by action and outcome code",
    ["action", "outcome"],
)

CONFLICT_RETRIES_TOTAL = Counter(
    "oficri_document_conflict_retries_total",
    "Transitions retried after a concurrency conflict",
    ["action"],
)

SIDE_EFFECT_FAILURES_TOTAL = Counter(
    "oficri_side_effect_failures_total",
    "Audit or notification dispatches that failed after commit",
    ["port"],
)
