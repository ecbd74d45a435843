"""Peewee-backed library database that serves records to the exporter."""

from __future__ import annotations

import json
import secrets
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import yaml
from peewee import (
    AutoField,
    CharField,
    DoesNotExist,
    ForeignKeyField,
    IntegerField,
    Model,
    SqliteDatabase,
    TextField,
)

from .models import (
    MARKDOWN_CONTENT_TYPE,
    NOTE_TYPE,
    Attachment,
    Creator,
    Record,
)

DB_FILENAME = "library.sqlite3"
KEY_ALPHABET = "23456789ABCDEFGHIJKLMNPQRSTUVWXYZ"
KEY_LENGTH = 8


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _coerce_utc(dt: datetime | None) -> datetime:
    if dt is None:
        return _utc_now()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_key() -> str:
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(KEY_LENGTH))


class StorageError(RuntimeError):
    """Raised when interacting with the library database fails."""


class UTCTextDateField(TextField):
    """Store ISO-8601 timestamps while returning timezone-aware datetimes."""

    def python_value(self, value: str | None) -> datetime | None:  # type: ignore[override]
        if value is None:
            return None
        dt = datetime.fromisoformat(value)
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)

    def db_value(self, value: datetime | None) -> str | None:  # type: ignore[override]
        if value is None:
            return None
        return _coerce_utc(value).isoformat()


class JSONField(TextField):
    def python_value(self, value: str | None) -> dict[str, Any]:  # type: ignore[override]
        return json.loads(value) if value else {}

    def db_value(self, value: Mapping[str, Any] | None) -> str:  # type: ignore[override]
        return json.dumps(dict(value or {}), ensure_ascii=False)


class StorageModel(Model):
    """Base model bound to the library database."""

    class Meta:
        database = SqliteDatabase(None)


class Item(StorageModel):
    id = AutoField()
    key = CharField(unique=True)
    library_id = IntegerField(null=True)
    item_type = TextField()
    field_values = JSONField(default=dict, column_name="fields")
    parent = ForeignKeyField("self", null=True, backref="children", on_delete="CASCADE")
    note = TextField(null=True)
    date_added = UTCTextDateField(default=_utc_now)

    class Meta:
        table_name = "items"


class ItemCreator(StorageModel):
    item = ForeignKeyField(Item, backref="creators", on_delete="CASCADE")
    first_name = TextField(default="")
    last_name = TextField(default="")
    creator_type = TextField(default="author")
    order_index = IntegerField(default=0)

    class Meta:
        table_name = "item_creators"


class ItemTag(StorageModel):
    item = ForeignKeyField(Item, backref="tags", on_delete="CASCADE")
    name = TextField()

    class Meta:
        table_name = "item_tags"
        indexes = ((("item", "name"), True),)


class Collection(StorageModel):
    id = AutoField()
    name = TextField(unique=True)

    class Meta:
        table_name = "collections"


class CollectionItem(StorageModel):
    collection = ForeignKeyField(Collection, backref="items", on_delete="CASCADE")
    item = ForeignKeyField(Item, backref="collections", on_delete="CASCADE")

    class Meta:
        table_name = "collection_items"
        indexes = ((("collection", "item"), True),)


class ItemRelation(StorageModel):
    subject = ForeignKeyField(Item, backref="relations", on_delete="CASCADE")
    target = ForeignKeyField(Item, on_delete="CASCADE")

    class Meta:
        table_name = "item_relations"
        indexes = ((("subject", "target"), True),)


class ItemAttachment(StorageModel):
    id = AutoField()
    key = CharField(unique=True)
    parent = ForeignKeyField(Item, backref="attachments", on_delete="CASCADE")
    title = TextField(default="")
    content_type = TextField(default="")
    path = TextField(null=True)
    url = TextField(null=True)
    link_mode = TextField(default="linked_file")

    class Meta:
        table_name = "item_attachments"


MODELS = (
    Item,
    ItemCreator,
    ItemTag,
    Collection,
    CollectionItem,
    ItemRelation,
    ItemAttachment,
)


class StorageDatabase(SqliteDatabase):
    """SqliteDatabase configured for per-call connection lifetimes."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            str(path),
            pragmas={"foreign_keys": 1},
            check_same_thread=False,
        )


class Storage:
    """High-level helper for reading and linking library items."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._database = StorageDatabase(self.path)

    def initialize(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:  # pragma: no cover - filesystem failures are rare
            raise StorageError(f"Failed to create database directory: {exc}") from exc

        with self._binding():
            try:
                self._database.create_tables(MODELS, safe=True)
            except Exception as exc:  # pragma: no cover - defensive
                raise StorageError(f"Failed to initialize database: {exc}") from exc

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def create_item(
        self,
        item_type: str,
        fields: Mapping[str, str] | None = None,
        *,
        creators: Iterable[Creator] = (),
        tags: Iterable[str] = (),
        collections: Iterable[str] = (),
        key: str | None = None,
        library_id: int | None = None,
        date_added: datetime | None = None,
    ) -> int:
        item_type = item_type.strip()
        if not item_type:
            raise StorageError("Cannot create an item without a type.")

        with self._binding(), self._database.atomic():
            try:
                item = Item.create(
                    key=key or generate_key(),
                    library_id=library_id,
                    item_type=item_type,
                    field_values={k: str(v) for k, v in (fields or {}).items()},
                    date_added=_coerce_utc(date_added),
                )
            except Exception as exc:
                raise StorageError(f"Failed to insert item: {exc}") from exc

            for index, creator in enumerate(creators):
                ItemCreator.create(
                    item=item,
                    first_name=creator.first_name,
                    last_name=creator.last_name,
                    creator_type=creator.creator_type,
                    order_index=index,
                )
            self._add_tags(item, tags)
            for name in collections:
                collection, _ = Collection.get_or_create(name=name)
                CollectionItem.get_or_create(collection=collection, item=item)
        return item.id

    def create_note(
        self,
        html: str,
        *,
        parent_id: int | None = None,
        tags: Iterable[str] = (),
        key: str | None = None,
        date_added: datetime | None = None,
    ) -> int:
        with self._binding(), self._database.atomic():
            parent = self._fetch(parent_id) if parent_id is not None else None
            try:
                note = Item.create(
                    key=key or generate_key(),
                    library_id=parent.library_id if parent is not None else None,
                    item_type=NOTE_TYPE,
                    parent=parent,
                    note=html,
                    date_added=_coerce_utc(date_added),
                )
            except Exception as exc:
                raise StorageError(f"Failed to insert note: {exc}") from exc
            self._add_tags(note, tags)
        return note.id

    def add_attachment(
        self,
        parent_id: int,
        *,
        title: str,
        content_type: str,
        path: str | None = None,
        url: str | None = None,
        link_mode: str = "linked_file",
    ) -> Attachment:
        with self._binding():
            parent = self._fetch(parent_id)
            try:
                row = ItemAttachment.create(
                    key=generate_key(),
                    parent=parent,
                    title=title,
                    content_type=content_type,
                    path=path,
                    url=url,
                    link_mode=link_mode,
                )
            except Exception as exc:
                raise StorageError(f"Failed to insert attachment: {exc}") from exc
            return _attachment_snapshot(row)

    def relate(self, first_id: int, second_id: int) -> None:
        """Relate two items in both directions."""

        with self._binding(), self._database.atomic():
            first = self._fetch(first_id)
            second = self._fetch(second_id)
            ItemRelation.get_or_create(subject=first, target=second)
            ItemRelation.get_or_create(subject=second, target=first)

    def link_file(self, parent_id: int, path: Path) -> Attachment:
        file_path = Path(path)
        return self.add_attachment(
            parent_id,
            title=file_path.name,
            content_type=MARKDOWN_CONTENT_TYPE,
            path=str(file_path),
            link_mode="linked_file",
        )

    def link_url(
        self, parent_id: int, url: str, *, title: str, content_type: str
    ) -> Attachment:
        return self.add_attachment(
            parent_id,
            title=title,
            content_type=content_type,
            url=url,
            link_mode="linked_url",
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def get(self, record_id: int) -> Record:
        with self._binding():
            return _record_snapshot(self._fetch(record_id))

    def find_by_key(self, key: str) -> Record:
        with self._binding():
            try:
                item = Item.get(Item.key == key)
            except DoesNotExist:
                raise StorageError(f"Item with key '{key}' not found.") from None
            return _record_snapshot(item)

    def list_top_level(self) -> list[Record]:
        with self._binding():
            query = (
                Item.select()
                .where(Item.parent.is_null() & (Item.item_type != NOTE_TYPE))
                .order_by(Item.id)
            )
            return [_record_snapshot(item) for item in query]

    def count_items(self) -> int:
        with self._binding():
            return Item.select().count()

    def _fetch(self, record_id: int) -> Item:
        try:
            return Item.get_by_id(int(record_id))
        except DoesNotExist:
            raise StorageError(f"Item '{record_id}' not found.") from None

    def _add_tags(self, item: Item, tags: Iterable[str]) -> None:
        for name in tags:
            name = str(name).strip()
            if name:
                ItemTag.get_or_create(item=item, name=name)

    @contextmanager
    def _binding(self) -> Iterator[None]:
        with self._database.connection_context():
            with self._database.bind_ctx(MODELS):
                yield


def _attachment_snapshot(row: ItemAttachment) -> Attachment:
    return Attachment(
        id=row.id,
        key=row.key,
        title=row.title,
        content_type=row.content_type,
        path=row.path,
        url=row.url,
        link_mode=row.link_mode,
    )


def _record_snapshot(item: Item) -> Record:
    creators = tuple(
        Creator(c.first_name, c.last_name, c.creator_type)
        for c in item.creators.order_by(ItemCreator.order_index)
    )
    tags = tuple(t.name for t in item.tags.order_by(ItemTag.id))
    collections = tuple(
        link.collection.name for link in item.collections.order_by(CollectionItem.id)
    )
    related = tuple(
        r.target_id for r in item.relations.order_by(ItemRelation.id)
    )
    attachments = tuple(
        _attachment_snapshot(a) for a in item.attachments.order_by(ItemAttachment.id)
    )
    note_ids = tuple(
        child.id
        for child in item.children.where(Item.item_type == NOTE_TYPE).order_by(Item.id)
    )
    return Record(
        id=item.id,
        key=item.key,
        library_id=item.library_id,
        item_type=item.item_type,
        fields=dict(item.field_values),
        creators=creators,
        tags=tags,
        collections=collections,
        related_ids=related,
        attachments=attachments,
        note_ids=note_ids,
        parent_id=item.parent_id,
        note=item.note,
        date_added=item.date_added,
    )


_RESERVED_IMPORT_KEYS = {
    "itemType",
    "key",
    "creators",
    "tags",
    "collections",
    "notes",
    "attachments",
    "relations",
    "dateAdded",
}


def import_library(storage: Storage, source: Path) -> list[int]:
    """Load a YAML or JSON list of items into ``storage``.

    Each entry follows the Zotero JSON export shape: ``itemType``, field
    values, ``creators`` (``firstName``/``lastName``/``creatorType``),
    ``tags`` (strings or ``{"tag": ...}``), ``collections`` (names), ``notes``
    (HTML strings), ``attachments`` (``title``/``contentType``/``path``/``url``)
    and ``relations`` (keys of other items in the file). Returns the ids of
    the created top-level items.
    """

    try:
        payload = yaml.safe_load(source.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise StorageError(f"Failed to read library file {source}: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("items", [])
    if not isinstance(payload, list):
        raise StorageError("Library file must contain a list of items.")

    created: list[int] = []
    ids_by_key: dict[str, int] = {}
    pending_relations: list[tuple[int, str]] = []

    for entry in payload:
        if not isinstance(entry, dict):
            raise StorageError("Every library entry must be a mapping.")
        fields = {
            k: str(v)
            for k, v in entry.items()
            if k not in _RESERVED_IMPORT_KEYS and v is not None
        }
        creators = [
            Creator(
                str(c.get("firstName", "")),
                str(c.get("lastName", c.get("name", ""))),
                str(c.get("creatorType", "author")),
            )
            for c in entry.get("creators") or []
        ]
        tags = [t["tag"] if isinstance(t, dict) else t for t in entry.get("tags") or []]
        date_added = entry.get("dateAdded")
        if isinstance(date_added, str):
            date_added = datetime.fromisoformat(date_added.replace("Z", "+00:00"))

        item_id = storage.create_item(
            str(entry.get("itemType", "document")),
            fields,
            creators=creators,
            tags=tags,
            collections=[str(c) for c in entry.get("collections") or []],
            key=entry.get("key"),
            date_added=date_added if isinstance(date_added, datetime) else None,
        )
        created.append(item_id)
        if entry.get("key"):
            ids_by_key[str(entry["key"])] = item_id

        for html in entry.get("notes") or []:
            note_html = html.get("note", "") if isinstance(html, dict) else str(html)
            storage.create_note(note_html, parent_id=item_id)
        for attachment in entry.get("attachments") or []:
            storage.add_attachment(
                item_id,
                title=str(attachment.get("title", "")),
                content_type=str(attachment.get("contentType", "")),
                path=attachment.get("path"),
                url=attachment.get("url"),
                link_mode="linked_url" if attachment.get("url") else "linked_file",
            )
        for related_key in entry.get("relations") or []:
            pending_relations.append((item_id, str(related_key)))

    for item_id, related_key in pending_relations:
        other = ids_by_key.get(related_key)
        if other is None:
            raise StorageError(f"Related item '{related_key}' not found in library file.")
        storage.relate(item_id, other)

    return created
