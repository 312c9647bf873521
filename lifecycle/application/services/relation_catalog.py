"""Relation catalog: every entity type that references a subject, with its erasure policy.

The catalog is the single extension point of the engine: supporting a new
entity type means adding exactly one RelationEntry to default_catalog().
Pure, no I/O.
"""

from collections.abc import Iterable

from lifecycle.core.constants import (
    ANONYMIZED_DISPLAY_NAME,
    ANONYMIZED_SUBJECT_ID,
    DOCUMENT_ID_FIELD,
    SUBJECT_ID_PLACEHOLDER,
)
from lifecycle.domain.entities.erasure import RelationEntry
from lifecycle.domain.enums import ErasurePolicy, SubjectRole
from lifecycle.domain.exceptions import PolicyViolationError


class RelationCatalog:
    """Ordered, validated set of relation entries.

    Construction raises PolicyViolationError on duplicate order or entity
    type, unknown policy, an ANONYMIZE entry whose query field is not
    anonymized (the cascade would never converge), or a malformed blob prefix.
    """

    def __init__(self, entries: Iterable[RelationEntry]) -> None:
        ordered = sorted(entries, key=lambda e: e.order)
        self._validate(ordered)
        self._entries = ordered
        self._by_type = {e.entity_type: e for e in ordered}

    @staticmethod
    def _validate(entries: list[RelationEntry]) -> None:
        seen_orders: set[int] = set()
        seen_types: set[str] = set()
        for entry in entries:
            if entry.order in seen_orders:
                raise PolicyViolationError(
                    f"Duplicate catalog order {entry.order}",
                    entity_type=entry.entity_type,
                )
            if entry.entity_type in seen_types:
                raise PolicyViolationError(
                    f"Duplicate catalog entity type {entry.entity_type!r}",
                    entity_type=entry.entity_type,
                )
            seen_orders.add(entry.order)
            seen_types.add(entry.entity_type)

            try:
                policy = ErasurePolicy(entry.policy)
            except ValueError:
                raise PolicyViolationError(
                    f"Unknown erasure policy {entry.policy!r}",
                    entity_type=entry.entity_type,
                ) from None
            if not entry.query_field:
                raise PolicyViolationError(
                    "Catalog entry has no query field", entity_type=entry.entity_type
                )
            if policy == ErasurePolicy.ANONYMIZE:
                if entry.query_field not in entry.identifying_fields:
                    raise PolicyViolationError(
                        f"ANONYMIZE entry must overwrite its query field {entry.query_field!r}",
                        entity_type=entry.entity_type,
                    )
                if entry.identifying_fields.get(entry.query_field) is None:
                    raise PolicyViolationError(
                        "ANONYMIZE sentinel for the query field must not be None",
                        entity_type=entry.entity_type,
                    )
            if entry.blob_prefix is not None:
                if policy != ErasurePolicy.HARD_DELETE:
                    raise PolicyViolationError(
                        "Blob prefix is only allowed on HARD_DELETE entries",
                        entity_type=entry.entity_type,
                    )
                try:
                    placeholders = entry.blob_prefix_fields
                except ValueError:
                    raise PolicyViolationError(
                        f"Malformed blob prefix template {entry.blob_prefix!r}",
                        entity_type=entry.entity_type,
                    ) from None
                if not placeholders:
                    raise PolicyViolationError(
                        f"Blob prefix must contain {SUBJECT_ID_PLACEHOLDER} or a record placeholder",
                        entity_type=entry.entity_type,
                    )

    def entries(self) -> list[RelationEntry]:
        """Return all entries ordered by execution order."""
        return list(self._entries)

    def entries_applicable_to(self, role: SubjectRole) -> list[RelationEntry]:
        """Return entries applicable to role, in execution order."""
        return [e for e in self._entries if e.applies_to(role)]

    def get(self, entity_type: str) -> RelationEntry:
        """Return the entry for entity_type.

        Raises:
            PolicyViolationError: If the entity type is not in the catalog.
        """
        entry = self._by_type.get(entity_type)
        if entry is None:
            raise PolicyViolationError(
                f"Entity type {entity_type!r} is not in the relation catalog",
                entity_type=entity_type,
            )
        return entry

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._by_type

    def __len__(self) -> int:
        return len(self._entries)


_AUTHOR_SENTINELS = {
    "authorId": ANONYMIZED_SUBJECT_ID,
    "authorName": ANONYMIZED_DISPLAY_NAME,
}
_SCOUT = frozenset({SubjectRole.SCOUT})
_PARENT = frozenset({SubjectRole.PARENT})
_ANIMATOR = frozenset({SubjectRole.ANIMATOR})


def default_catalog() -> RelationCatalog:
    """Return the scouting unit catalog.

    Detachments run before deletions so that references held by other
    members are cleared first; the identity document (users) goes last,
    after detachments that write into the same collection.
    """
    return RelationCatalog(
        [
            # Family links
            RelationEntry(
                entity_type="scoutRelations",
                collection="parentScoutRelations",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=10,
                roles=_SCOUT,
            ),
            RelationEntry(
                entity_type="parentRelations",
                collection="parentScoutRelations",
                query_field="parentId",
                policy=ErasurePolicy.HARD_DELETE,
                order=20,
                roles=_PARENT,
            ),
            # References the subject holds on other members' records
            RelationEntry(
                entity_type="attendanceConfirmations",
                collection="eventAttendances",
                query_field="parentConfirmedBy",
                policy=ErasurePolicy.DETACH,
                order=30,
                roles=_PARENT,
                detach_fields=("parentConfirmedAt",),
            ),
            RelationEntry(
                entity_type="submissionValidations",
                collection="challengeSubmissions",
                query_field="validatedBy",
                policy=ErasurePolicy.DETACH,
                order=40,
                roles=frozenset({SubjectRole.ANIMATOR, SubjectRole.PARENT}),
                detach_fields=("validatedAt",),
            ),
            RelationEntry(
                entity_type="badgeAwards",
                collection="scoutBadges",
                query_field="awardedBy",
                policy=ErasurePolicy.DETACH,
                order=50,
                roles=_ANIMATOR,
            ),
            RelationEntry(
                entity_type="challengeAuthorship",
                collection="challenges",
                query_field="createdBy",
                policy=ErasurePolicy.DETACH,
                order=60,
                roles=_ANIMATOR,
            ),
            RelationEntry(
                entity_type="memberValidations",
                collection="users",
                query_field="validatedBy",
                policy=ErasurePolicy.DETACH,
                order=70,
                roles=_ANIMATOR,
            ),
            RelationEntry(
                entity_type="healthRecordSignatures",
                collection="healthRecords",
                query_field="signedByParentId",
                policy=ErasurePolicy.DETACH,
                order=80,
                roles=_PARENT,
                detach_fields=("signedByParentName",),
            ),
            RelationEntry(
                entity_type="healthRecordEdits",
                collection="healthRecords",
                query_field="lastUpdatedBy",
                policy=ErasurePolicy.DETACH,
                order=90,
            ),
            RelationEntry(
                entity_type="albumUploads",
                collection="albumPhotos",
                query_field="uploadedBy",
                policy=ErasurePolicy.DETACH,
                order=100,
            ),
            RelationEntry(
                entity_type="driveUploads",
                collection="storageFiles",
                query_field="uploadedBy",
                policy=ErasurePolicy.DETACH,
                order=110,
            ),
            # Records owned by the subject
            RelationEntry(
                entity_type="challengeSubmissions",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=120,
                blob_prefix="challenges/{challengeId}/submissions/{id}/",
            ),
            RelationEntry(
                entity_type="scoutBadges",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=130,
                roles=_SCOUT,
            ),
            RelationEntry(
                entity_type="eventAttendances",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=140,
                roles=_SCOUT,
            ),
            RelationEntry(
                entity_type="payments",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=150,
                roles=_SCOUT,
            ),
            RelationEntry(
                entity_type="documentSignatures",
                query_field="signedBy",
                policy=ErasurePolicy.HARD_DELETE,
                order=160,
            ),
            RelationEntry(
                entity_type="pollVotes",
                query_field="userId",
                policy=ErasurePolicy.HARD_DELETE,
                order=170,
            ),
            RelationEntry(
                entity_type="channelReadStatus",
                query_field="userId",
                policy=ErasurePolicy.HARD_DELETE,
                order=180,
            ),
            RelationEntry(
                entity_type="directMessages",
                collection="messages",
                query_field="senderId",
                policy=ErasurePolicy.HARD_DELETE,
                order=190,
            ),
            # Shared content kept for other members, author erased
            RelationEntry(
                entity_type="channelMessages",
                query_field="authorId",
                policy=ErasurePolicy.ANONYMIZE,
                order=200,
                identifying_fields=_AUTHOR_SENTINELS,
            ),
            RelationEntry(
                entity_type="messageComments",
                query_field="authorId",
                policy=ErasurePolicy.ANONYMIZE,
                order=210,
                identifying_fields=_AUTHOR_SENTINELS,
            ),
            RelationEntry(
                entity_type="posts",
                query_field="authorId",
                policy=ErasurePolicy.ANONYMIZE,
                order=220,
                identifying_fields=_AUTHOR_SENTINELS,
            ),
            RelationEntry(
                entity_type="polls",
                query_field="authorId",
                policy=ErasurePolicy.ANONYMIZE,
                order=230,
                identifying_fields=_AUTHOR_SENTINELS,
            ),
            RelationEntry(
                entity_type="healthRecords",
                query_field="scoutId",
                policy=ErasurePolicy.HARD_DELETE,
                order=240,
                roles=_SCOUT,
            ),
            # Identity document last
            RelationEntry(
                entity_type="users",
                query_field=DOCUMENT_ID_FIELD,
                policy=ErasurePolicy.HARD_DELETE,
                order=250,
                blob_prefix=f"avatars/{SUBJECT_ID_PLACEHOLDER}/",
            ),
        ]
    )
