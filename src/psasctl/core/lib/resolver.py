"""Identifier resolution shared by every user kind.

Operators type either a full identifier or a short, memorable fragment.
``resolve`` turns that into exactly one entity, applying the same
precedence to every backend:

1. A blank identifier is rejected.
2. An identifier shaped like the kind's primary id (panel UUIDs) is looked
   up by id only; a miss is final.
3. A case-insensitive exact name match wins if it is unique.
4. Otherwise a unique case-insensitive substring match wins.

Several exact or substring hits raise ``AmbiguousError`` carrying the
candidates, so the caller can list them instead of guessing.

Example:
    user = resolve("bo", users, TRUST_USER)
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Final, TypeVar

from loguru import logger

from psasctl.core.entities import SelectableEntity, normalize_socks_login
from psasctl.core.exceptions import AmbiguousError, EmptyIdentifierError, NotFoundError

E = TypeVar("E", bound=SelectableEntity)

UUID_RE: Final = re.compile(
    r"[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{12}"
)


@dataclass(frozen=True)
class EntityKind:
    """Resolution rules for one user kind.

    Attributes:
        label: Singular name used in messages
        plural: Plural name used in messages
        id_pattern: Syntax of a separate primary id, if the kind has one
        normalize: Canonical form of a typed identifier
    """

    label: str
    plural: str
    id_pattern: re.Pattern | None = None
    normalize: Callable[[str], str] = field(default=str.strip)

    @property
    def has_separate_id(self) -> bool:
        return self.id_pattern is not None

    def is_primary_id(self, identifier: str) -> bool:
        return self.id_pattern is not None and self.id_pattern.fullmatch(identifier) is not None

    def matches_fragment(self, entity: SelectableEntity, fragment: str) -> bool:
        """Substring test used by step 4; ``fragment`` is already lowercased."""
        if fragment in entity.display_name.strip().lower():
            return True
        return not self.has_separate_id and fragment in entity.primary_id.strip().lower()


PANEL_USER: Final = EntityKind("panel user", "panel users", id_pattern=UUID_RE)
TRUST_USER: Final = EntityKind("trust user", "trust users")
SOCKS_USER: Final = EntityKind("socks user", "socks users", normalize=normalize_socks_login)


def find_by_id(entities: Sequence[E], primary_id: str) -> E | None:
    """Return the entity whose primary id equals ``primary_id`` ignoring case."""
    wanted = primary_id.strip().lower()
    for entity in entities:
        if entity.primary_id.strip().lower() == wanted:
            return entity
    return None


def resolve(
    identifier: str,
    entities: Sequence[E],
    kind: EntityKind,
    lookup_by_id: Callable[[str], E | None] | None = None,
) -> E:
    """Resolve a typed identifier to exactly one entity.

    Args:
        identifier: What the operator typed
        entities: Current snapshot of the kind's entities
        kind: Resolution rules for the entities
        lookup_by_id: Direct id lookup; defaults to scanning ``entities``

    Returns:
        The single matching entity

    Raises:
        EmptyIdentifierError: If the identifier is blank
        NotFoundError: If nothing matches
        AmbiguousError: If more than one entity matches at the deciding step
    """
    key = kind.normalize(identifier or "")
    if not key:
        raise EmptyIdentifierError("empty USER_ID")

    if kind.is_primary_id(key):
        found = lookup_by_id(key) if lookup_by_id else find_by_id(entities, key)
        if found is None:
            raise NotFoundError(f"{kind.label} not found by id: {key}")
        logger.debug(f"Resolved {key!r} by id")
        return found

    lowered = key.lower()
    exact = [e for e in entities if e.display_name.strip().lower() == lowered]
    if len(exact) == 1:
        logger.debug(f"Resolved {key!r} by exact name")
        return exact[0]
    if exact:
        raise AmbiguousError(key, exact, kind.plural)

    partial = [e for e in entities if kind.matches_fragment(e, lowered)]
    if len(partial) == 1:
        logger.debug(f"Resolved {key!r} by name fragment")
        return partial[0]
    if not partial:
        raise NotFoundError(f"{kind.label} not found: {key}")
    raise AmbiguousError(key, partial, kind.plural)
