"""Core constants: sentinels, lock key prefixes and shared literal values."""

# Anonymization sentinels written over a subject's identifying fields.
ANONYMIZED_SUBJECT_ID = "deleted-user"
ANONYMIZED_DISPLAY_NAME = "[Deleted user]"

# Pseudo-field for "match on document id" in store queries (Firestore convention).
DOCUMENT_ID_FIELD = "__name__"

# Placeholders in RelationEntry.blob_prefix templates. Any other placeholder
# names a field of the record being deleted.
BLOB_SUBJECT_KEY = "subject_id"
BLOB_RECORD_KEY = "id"
SUBJECT_ID_PLACEHOLDER = f"{{{BLOB_SUBJECT_KEY}}}"

# Entity type recorded for the final credential revocation step.
CREDENTIAL_STEP = "authIdentity"

# Lock key prefix (Redis) and delimiter for composite keys.
LOCK_PREFIX_ERASURE = "erasure-lock"
LOCK_KEY_SEP = ":"

# Firestore write limits
FIRESTORE_MAX_BATCH_WRITES = 500
FIRESTORE_QUERY_PAGE_SIZE = 500
