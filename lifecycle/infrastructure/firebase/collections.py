"""Firestore collection names owned by the lifecycle engine.

Firestore has no DDL or migrations; collections are created on first write.
Collections holding application data are named in the relation catalog.
"""

# Erasure bookkeeping
COLLECTION_ERASURE_LEDGER = "erasureLedger"
COLLECTION_ERASURE_JOBS = "erasureJobs"

# Separator between subject id and entity type in ledger document ids.
LEDGER_ID_SEP = "__"


def ledger_document_id(subject_id: str, entity_type: str) -> str:
    """Return the ledger document id for (subject_id, entity_type)."""
    return f"{subject_id}{LEDGER_ID_SEP}{entity_type}"
