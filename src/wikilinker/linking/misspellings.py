"""Misspelling write-back.

For every resolved entity, observed display names the target record does
not already know (basename, aliases, misspellings; compared
case-insensitively) are appended to the record's ``misspellings``. Future
runs then recognise those variants by direct string match.

Records the reviewer chose to create are materialised first, in the entity
type's folder, with the observed variants already included.

This is the only durable write the linker makes. Writes are grouped per
record and go through the store's read-modify-write, so two entities
resolving to one record never lose each other's additions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any

from wikilinker.errors import MetadataParseError, RecordNotFoundError
from wikilinker.models.entity import EntityTypeConfig
from wikilinker.models.selection import NewRecord, Selection
from wikilinker.store.base import RecordStore
from wikilinker.utils.text import to_list

logger = logging.getLogger(__name__)


def unknown_variants(names: Iterable[str], known: Iterable[str]) -> list[str]:
    """Names not equal (case-insensitively) to any known name, deduplicated in order."""
    seen = {k.casefold() for k in known}
    variants: list[str] = []
    for name in names:
        folded = name.casefold()
        if not name.strip() or folded in seen:
            continue
        seen.add(folded)
        variants.append(name)
    return variants


class MisspellingLearner:
    """Persists newly observed spelling variants onto target records.

    Usage:
        learner = MisspellingLearner(store)
        paths = await learner.create_new_records(selections, entity_types)
        written = await learner.learn(selections, paths)
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def create_new_records(
        self,
        selections: list[Selection],
        entity_types: list[EntityTypeConfig],
    ) -> dict[str, str]:
        """Create the records chosen during review.

        Returns:
            Mapping of new record basename to its store path.
        """
        folders = {et.type: et.folder for et in entity_types}
        created: dict[str, str] = {}

        for selection in selections:
            new_record = selection.new_record
            if selection.selected_record is not None or new_record is None:
                continue
            if new_record.basename in created:
                continue

            metadata = self._new_record_metadata(new_record, selection.entity.display_names)
            folder = folders.get(selection.entity.type, "")
            created[new_record.basename] = await self._store.create_record(
                folder, new_record.basename, metadata
            )

        return created

    def _new_record_metadata(self, new_record: NewRecord, observed: list[str]) -> dict[str, Any]:
        misspellings = list(new_record.misspellings)
        misspellings += unknown_variants(
            observed, [new_record.basename, *new_record.aliases, *misspellings]
        )
        metadata: dict[str, Any] = {"date_created": date.today().isoformat()}
        if new_record.aliases:
            metadata["aliases"] = list(new_record.aliases)
        if misspellings:
            metadata["misspellings"] = misspellings
        return metadata

    async def learn(
        self,
        selections: list[Selection],
        new_record_paths: dict[str, str] | None = None,
    ) -> dict[str, list[str]]:
        """Append unknown display-name variants to each target's misspellings.

        Args:
            selections: Finalized selections.
            new_record_paths: Paths of records created for this run, which
                already carry their variants and are skipped.

        Returns:
            Variants actually written, by record path.
        """
        new_paths = set((new_record_paths or {}).values())
        pending: dict[str, tuple[str, list[str]]] = {}

        for selection in selections:
            record = selection.selected_record
            if record is None or record.path in new_paths:
                continue
            variants = unknown_variants(selection.entity.display_names, record.names)
            if not variants:
                continue
            _, collected = pending.setdefault(record.path, (record.basename, []))
            collected.extend(v for v in variants if v not in collected)

        written: dict[str, list[str]] = {}
        for path, (basename, variants) in pending.items():
            try:
                added = await self._append(path, basename, variants)
            except RecordNotFoundError:
                logger.warning("Cannot record misspellings; %s no longer exists", path)
                continue
            except MetadataParseError as e:
                logger.warning("Cannot record misspellings for %s; leaving it untouched: %s", path, e)
                continue
            if added:
                written[path] = added
                logger.info("Learned misspellings for %s: %s", path, ", ".join(added))

        return written

    async def _append(self, path: str, basename: str, variants: list[str]) -> list[str]:
        added: list[str] = []

        def mutate(metadata: dict[str, Any]) -> None:
            existing = to_list(metadata.get("misspellings"))
            known = [basename, *to_list(metadata.get("aliases")), *existing]
            added.extend(unknown_variants(variants, known))
            if added:
                metadata["misspellings"] = existing + added

        await self._store.update_metadata(path, mutate)
        return added
