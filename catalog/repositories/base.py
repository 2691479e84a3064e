"""Generic cache-backed entity repository.

Reads go through the view cache first and populate it on a miss. Writes
always run in the same order:

    validate -> persist -> invalidate -> publish

Invalidation problems are logged and never undo a persisted write.
Repository methods take and return camelCase records ("nameEs",
"category": <id>) and resolved views; the ORM models stay internal.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Mapping, TypeVar

from sqlalchemy import Select, and_, func, inspect as sa_inspect, or_, select
from sqlalchemy.sql.elements import ColumnElement

from catalog.core.errors import ConflictError, NotFoundError, UnknownFilterError, ValidationError
from catalog.core.locale import EntitySpec, locale_suffix, resolve
from catalog.infra.cache import MISS, CacheKey
from catalog.infra.logging import get_logger
from catalog.models.base import Base, generate_id

if TYPE_CHECKING:
    from catalog.core.context import CatalogContext

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

UNLIMITED = -1


@dataclass(frozen=True)
class Reference:
    """Foreign key carried by an input record.

    Attributes:
        field: Input key holding the referenced id ("category")
        column: Model attribute storing it ("category_id")
        target: Registry name of the owning repository ("fruit_categories")
        required: Must be present on create
        nullable: An empty value clears the reference instead of failing
    """

    field: str
    column: str
    target: str
    required: bool = True
    nullable: bool = False


@dataclass(frozen=True)
class Page:
    """Offset pagination and ordering options.

    Attributes:
        pag: Zero-based page number
        num: Page size; None uses the configured default, -1 means no limit
        ord: Sort field name; None uses the entity's default order
        asc: Ascending when True
    """

    pag: int = 0
    num: int | None = None
    ord: str | None = None
    asc: bool = True

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> "Page":
        options = options or {}
        return cls(
            pag=int(options.get("pag") or 0),
            num=options.get("num"),
            ord=options.get("ord"),
            asc=bool(options.get("asc", True)),
        )

    def limit(self, default_size: int) -> int | None:
        if self.num == UNLIMITED:
            return None
        return self.num or default_size

    def signature(self) -> dict[str, Any]:
        return {"pag": self.pag, "num": self.num, "ord": self.ord, "asc": self.asc}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def snapshot(obj: Base) -> dict[str, Any]:
    """Loaded column values of a model instance, keyed by attribute name.

    Server-generated columns expired by a flush are skipped; touching them
    would trigger a lazy load.
    """
    state = sa_inspect(obj)
    unloaded = state.unloaded
    return {
        attr.key: getattr(obj, attr.key)
        for attr in state.mapper.column_attrs
        if attr.key not in unloaded
    }


class EntityRepository(Generic[ModelT]):
    """CRUD for one entity with cache coherence and change events.

    Subclasses declare the model, its resolution spec and the input
    vocabulary; the base implements the operations.
    """

    model: ClassVar[type[Base]]
    spec: ClassVar[EntitySpec]
    # Input key -> model attribute, for plain columns
    columns: ClassVar[Mapping[str, str]] = {}
    references: ClassVar[tuple[Reference, ...]] = ()
    required: ClassVar[tuple[str, ...]] = ()
    # Natural keys rejected on duplicate, as model attribute tuples
    unique_together: ClassVar[tuple[tuple[str, ...], ...]] = ()
    filters: ClassVar[frozenset[str]] = frozenset({"query", "id"})
    # ord name -> model attribute; "{locale}" is replaced at query time
    sortable: ClassVar[Mapping[str, str]] = {"id": "id", "name": "name_{locale}"}
    # Specs of entities whose cached views embed this one; rows removed by
    # ON DELETE CASCADE are added from the schema by cascade_specs()
    dependents: ClassVar[tuple[EntitySpec, ...]] = ()

    def __init__(self, ctx: "CatalogContext") -> None:
        self.ctx = ctx
        self.settings = ctx.settings
        self.cache = ctx.cache
        self.events = ctx.events

    # =========================================================================
    # Helpers
    # =========================================================================

    def _locale(self, locale: str | None) -> str:
        locale = locale or self.settings.default_locale
        locale_suffix(locale, self.settings.supported_locales)
        return locale

    def _resolve(self, record: Any, locale: str) -> Any:
        return resolve(record, self.spec, locale, self.settings.supported_locales)

    def _key(self, locale: str, **qualifiers: Any) -> CacheKey:
        return CacheKey.of(self.spec.name, locale=locale, **qualifiers)

    async def _cached_one(
        self,
        key: CacheKey,
        locale: str,
        *criteria: ColumnElement[bool],
    ) -> dict[str, Any] | None:
        cached = await self.cache.get(key)
        if cached is not MISS:
            return cached

        async with self.ctx.session() as session:
            result = await session.execute(
                select(self.model).where(*criteria).order_by(self.model.id).limit(1)
            )
            obj = result.scalars().first()
            view = self._resolve(obj.to_record(), locale) if obj is not None else None

        await self.cache.set(key, view)
        return view

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_by_id(self, entity_id: str, locale: str | None = None) -> dict[str, Any] | None:
        """Resolved view of one record, or None if it does not exist."""
        locale = self._locale(locale)
        return await self._cached_one(
            self._key(locale, id=entity_id),
            locale,
            self.model.id == entity_id,
        )

    async def list(
        self,
        filter: Mapping[str, Any] | None = None,
        page: Page | None = None,
        locale: str | None = None,
    ) -> list[dict[str, Any]]:
        """Resolved views matching filter, one page at a time.

        Raises:
            UnknownFilterError: If filter holds a key outside the vocabulary
            ValidationError: If page.ord is not a sortable field
        """
        locale = self._locale(locale)
        filter = dict(filter or {})
        page = page or Page()

        key = CacheKey.of(
            self.spec.collection,
            locale=locale,
            filter=filter,
            options=page.signature(),
        )
        cached = await self.cache.get(key)
        if cached is not MISS:
            return cached

        stmt = self._apply_filter(select(self.model), filter)
        stmt = self._apply_order(stmt, filter, page, locale)
        limit = page.limit(self.settings.default_page_size)
        if limit is not None:
            stmt = stmt.limit(limit).offset(page.pag * limit)

        async with self.ctx.session() as session:
            result = await session.execute(stmt)
            views = [self._resolve(obj.to_record(), locale) for obj in result.scalars().all()]

        await self.cache.set(key, views)
        return views

    async def count(self, filter: Mapping[str, Any] | None = None) -> int:
        """Number of records matching filter."""
        filter = dict(filter or {})
        key = CacheKey.of(self.spec.collection, count=None, filter=filter)
        cached = await self.cache.get(key)
        if cached is not MISS:
            return cached

        stmt = self._apply_filter(select(func.count()).select_from(self.model), filter)
        async with self.ctx.session() as session:
            total = int((await session.execute(stmt)).scalar_one())

        await self.cache.set(key, total)
        return total

    async def existing_ids(self) -> list[str]:
        """Every stored id, uncached. Used to seed reconciliation runs."""
        async with self.ctx.session() as session:
            return list((await session.execute(select(self.model.id))).scalars().all())

    # =========================================================================
    # Filtering and ordering
    # =========================================================================

    def _apply_filter(self, stmt: Select, filter: Mapping[str, Any]) -> Select:
        for name, value in filter.items():
            if name not in self.filters:
                raise UnknownFilterError(
                    f"Unknown {self.spec.name} filter: {name}",
                    filter=name,
                    allowed=sorted(self.filters),
                )
            clause = self._filter_clause(name, value)
            if clause is not None:
                stmt = stmt.where(clause)
        return stmt

    def _filter_clause(self, name: str, value: Any) -> ColumnElement[bool] | None:
        """Translate one filter entry into a WHERE clause.

        Subclasses handle their own vocabulary first and defer to this.
        """
        if name == "id":
            return self.model.id.in_(as_list(value))
        if name == "exclude":
            return self.model.id.not_in(as_list(value))
        if name == "query":
            return self._query_clause(str(value or ""))
        for ref in self.references:
            if ref.field == name:
                return getattr(self.model, ref.column).in_(as_list(value))
        raise UnknownFilterError(f"Unsupported {self.spec.name} filter: {name}", filter=name)

    def _query_clause(self, query: str) -> ColumnElement[bool] | None:
        """Every whitespace-separated term must match a name in either locale."""
        terms = query.split()
        if not terms:
            return None
        columns = [getattr(self.model, f"name_{code}") for code in self.settings.supported_locales]
        return and_(*[or_(*[col.ilike(f"%{term}%") for col in columns]) for term in terms])

    def _sort_expression(self, ord: str, locale: str) -> Any:
        attr = self.sortable.get(ord)
        if attr is None:
            raise ValidationError(
                f"Cannot sort {self.spec.collection} by {ord}",
                code="CATALOG_UNKNOWN_SORT",
                ord=ord,
            )
        return getattr(self.model, attr.format(locale=locale))

    def _apply_order(self, stmt: Select, filter: Mapping[str, Any], page: Page, locale: str) -> Select:
        if page.ord:
            expr = self._sort_expression(page.ord, locale)
            return stmt.order_by(expr.asc() if page.asc else expr.desc(), self.model.id)
        return self._default_order(stmt, filter, locale, page.asc)

    def _default_order(self, stmt: Select, filter: Mapping[str, Any], locale: str, asc: bool) -> Select:
        """Locale name order, id as tie-breaker."""
        expr = getattr(self.model, f"name_{locale}")
        return stmt.order_by(expr.asc() if asc else expr.desc(), self.model.id)

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_required(self, data: Mapping[str, Any], partial: bool) -> None:
        for name in self.required:
            if partial and name not in data:
                continue
            if is_blank(data.get(name)):
                raise ValidationError(
                    f"{self.spec.event_name} {name} is required",
                    code="CATALOG_MISSING_FIELD",
                    field=name,
                )

    def _coerce(self, attr: str, value: Any) -> Any:
        """Convert an input value for a model attribute. Blank text becomes None."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    async def _column_values(
        self,
        data: Mapping[str, Any],
        locale: str,
        partial: bool,
    ) -> dict[str, Any]:
        """Map input keys to model attributes, validating references.

        Every referenced id must exist in its owning repository.
        """
        values: dict[str, Any] = {}
        for key, attr in self.columns.items():
            if key in data:
                values[attr] = self._coerce(attr, data[key])

        for ref in self.references:
            if ref.field not in data:
                if ref.required and not partial:
                    raise ValidationError(
                        f"{self.spec.event_name} {ref.field} is required",
                        code="CATALOG_MISSING_FIELD",
                        field=ref.field,
                    )
                continue

            target_id = data[ref.field]
            if is_blank(target_id):
                if ref.nullable:
                    values[ref.column] = None
                    continue
                raise ValidationError(
                    f"{self.spec.event_name} {ref.field} is required",
                    code="CATALOG_MISSING_FIELD",
                    field=ref.field,
                )

            owner = self.ctx.repositories.get(ref.target)
            if await owner.get_by_id(target_id, locale) is None:
                raise ValidationError(
                    f"{owner.spec.event_name} {target_id} does not exist",
                    code="CATALOG_INVALID_REFERENCE",
                    field=ref.field,
                    value=target_id,
                )
            values[ref.column] = target_id

        return values

    async def _check_unique(
        self,
        session: Any,
        values: Mapping[str, Any],
        exclude_id: str | None = None,
        current: Mapping[str, Any] | None = None,
    ) -> None:
        merged = {**(current or {}), **values}
        for attrs in self.unique_together:
            if not all(attr in merged for attr in attrs):
                continue
            criteria: list[ColumnElement[bool]] = []
            for attr in attrs:
                column = getattr(self.model, attr)
                criteria.append(column.is_(None) if merged[attr] is None else column == merged[attr])
            if exclude_id is not None:
                criteria.append(self.model.id != exclude_id)

            existing = (
                await session.execute(select(self.model.id).where(*criteria).limit(1))
            ).scalar()
            if existing is not None:
                raise ConflictError(
                    f"{self.spec.event_name} already exists for "
                    + ", ".join(f"{attr}={merged[attr]}" for attr in attrs),
                    code="CATALOG_DUPLICATE_KEY",
                    existing_id=existing,
                )

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, input: Mapping[str, Any], locale: str | None = None) -> dict[str, Any]:
        """Validate, persist and announce a new record.

        Args:
            input: camelCase record; "id" is optional and generated if absent
            locale: Locale of the returned and published view

        Returns:
            Resolved view of the created record

        Raises:
            ConflictError: Supplied id or natural key already exists
            ValidationError: Missing field or unknown reference
        """
        locale = self._locale(locale)
        data = dict(input)
        entity_id = data.pop("id", None) or None

        if entity_id is not None and await self.get_by_id(entity_id, locale) is not None:
            raise ConflictError(
                f"{self.spec.event_name} {entity_id} already exists",
                code="CATALOG_DUPLICATE_ID",
                id=entity_id,
            )
        self._check_required(data, partial=False)
        values = await self._column_values(data, locale, partial=False)

        async with self.ctx.session() as session:
            await self._check_unique(session, values)
            obj = self.model(id=entity_id or generate_id(), **values)
            session.add(obj)
            await session.flush()
            new = snapshot(obj)

        await self._invalidate(new)
        view = await self.get_by_id(new["id"], locale)
        await self._publish(f"created{self.spec.event_name}", f"created{self.spec.event_name}", view)
        logger.debug("Entity created", entity=self.spec.name, id=new["id"])
        return view

    async def update(self, input: Mapping[str, Any], locale: str | None = None) -> dict[str, Any]:
        """Apply the fields present in input to an existing record.

        Raises:
            NotFoundError: No record with input["id"]
            ConflictError: The change collides with another natural key
            ValidationError: Missing id, blanked required field, unknown reference
        """
        locale = self._locale(locale)
        data = dict(input)
        entity_id = data.pop("id", None)
        if is_blank(entity_id):
            raise ValidationError(
                f"{self.spec.event_name} id is required",
                code="CATALOG_MISSING_FIELD",
                field="id",
            )
        if await self.get_by_id(entity_id, locale) is None:
            raise NotFoundError(f"{self.spec.event_name} {entity_id} does not exist", id=entity_id)

        self._check_required(data, partial=True)
        values = await self._column_values(data, locale, partial=True)

        async with self.ctx.session() as session:
            obj = await session.get(self.model, entity_id)
            if obj is None:
                raise NotFoundError(f"{self.spec.event_name} {entity_id} does not exist", id=entity_id)
            old = snapshot(obj)
            await self._check_unique(session, values, exclude_id=entity_id, current=old)
            for attr, value in values.items():
                setattr(obj, attr, value)
            await session.flush()
            new = snapshot(obj)

        await self._invalidate(old, new)
        view = await self.get_by_id(entity_id, locale)
        event = f"updated{self.spec.event_name}"
        await self._publish(event, f"{event}:id={entity_id}", view)
        return view

    async def delete(self, entity_id: str, locale: str | None = None) -> dict[str, Any]:
        """Remove a record and announce its last known view.

        Raises:
            NotFoundError: No record with entity_id
        """
        locale = self._locale(locale)
        view = await self.get_by_id(entity_id, locale)
        if view is None:
            raise NotFoundError(f"{self.spec.event_name} {entity_id} does not exist", id=entity_id)

        async with self.ctx.session() as session:
            obj = await session.get(self.model, entity_id)
            if obj is None:
                raise NotFoundError(f"{self.spec.event_name} {entity_id} does not exist", id=entity_id)
            old = snapshot(obj)
            await session.delete(obj)

        await self._invalidate(old)
        event = f"deleted{self.spec.event_name}"
        await self._publish(event, f"{event}:id={entity_id}", view)
        return view

    # =========================================================================
    # Cache invalidation and events
    # =========================================================================

    def _cache_patterns(self, values: Mapping[str, Any]) -> list[str]:
        """Key families derived from one row state (id and natural keys)."""
        patterns = [CacheKey.family(self.spec.name, id=values["id"])]
        for code in self.settings.supported_locales:
            name = values.get(f"name_{code}")
            if name:
                patterns.append(CacheKey.family(self.spec.name, name=name))
        return patterns

    def invalidation_patterns(self, *states: Mapping[str, Any]) -> list[str]:
        patterns: list[str] = []
        for state in states:
            patterns.extend(self._cache_patterns(state))
        patterns.append(CacheKey.space(self.spec.collection))
        for dependent in (*self.dependents, *cascade_specs(self.model.__tablename__)):
            patterns.append(CacheKey.space(dependent.name))
            patterns.append(CacheKey.space(dependent.collection))
        return list(dict.fromkeys(patterns))

    async def _invalidate(self, *states: Mapping[str, Any]) -> None:
        for pattern in self.invalidation_patterns(*states):
            try:
                await self.cache.invalidate(pattern)
            except Exception as e:
                logger.error(
                    "Cache invalidation failed",
                    entity=self.spec.name,
                    pattern=pattern,
                    error=str(e),
                )

    async def _publish(self, event: str, channel: str, view: Any) -> None:
        try:
            await self.events.publish(channel, {event: view})
        except Exception as e:
            logger.error("Event publish failed", channel=channel, error=str(e))


class NamedEntityRepository(EntityRepository[ModelT]):
    """Repository for entities looked up by their locale name."""

    async def get_by_name(self, name: str, locale: str | None = None) -> dict[str, Any] | None:
        """Resolved view of the record whose name in locale equals name."""
        locale = self._locale(locale)
        return await self._cached_one(
            self._key(locale, name=name),
            locale,
            getattr(self.model, f"name_{locale}") == name,
        )

    async def existing_names(self, locale: str = "en") -> dict[str, str]:
        """Map of name (in locale) to id for every record."""
        column = getattr(self.model, f"name_{locale}")
        async with self.ctx.session() as session:
            rows = (await session.execute(select(column, self.model.id))).all()
        return {name: entity_id for name, entity_id in rows}


@lru_cache
def cascade_specs(table: str) -> tuple[EntitySpec, ...]:
    """Specs of every entity whose rows a delete from table removes.

    Follows ON DELETE CASCADE foreign keys transitively through the mapped
    schema, so cached views of cascaded rows are invalidated with their root.
    """
    specs_by_table: dict[str, EntitySpec] = {}
    pending = list(EntityRepository.__subclasses__())
    while pending:
        repo = pending.pop()
        pending.extend(repo.__subclasses__())
        if "model" in vars(repo):
            specs_by_table[repo.model.__tablename__] = repo.spec

    reached: list[str] = []
    frontier = [table]
    while frontier:
        parent = frontier.pop()
        for child in Base.metadata.sorted_tables:
            if child.name == table or child.name in reached:
                continue
            if any(
                fk.column.table.name == parent and (fk.ondelete or "").upper() == "CASCADE"
                for fk in child.foreign_keys
            ):
                reached.append(child.name)
                frontier.append(child.name)
    return tuple(specs_by_table[name] for name in reached if name in specs_by_table)
