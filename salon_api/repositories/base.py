from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.errors import BadRequestError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _integrity_error_to_http(exc: IntegrityError) -> Exception:
    """Map a datastore integrity violation onto the matching HTTP error."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    text = str(orig or exc)
    if code == _UNIQUE_VIOLATION or "UNIQUE constraint" in text or "duplicate key" in text:
        return ConflictError("Resource already exists")
    if code == _FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint" in text:
        return BadRequestError("Referenced resource does not exist")
    return BadRequestError("Data integrity violation")


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Integrity errors raised on flush/commit are rolled back and translated into
    ConflictError (unique violation) or BadRequestError (everything else).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def scalar(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return the first column of the first row."""
        result = await self.execute(statement, params)
        return result.scalar()

    async def commit(self) -> None:
        """Commit current transaction, translating integrity violations."""
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Integrity error on commit: %s", exc.orig)
            raise _integrity_error_to_http(exc) from exc

    async def refresh(self, entity: Any) -> None:
        """Reload an entity's attributes from the datastore."""
        await self.session.refresh(entity)

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)


class OwnedRepository(BaseRepository, Generic[ModelT]):
    """
    Generic repository for a table scoped by owner_id.

    Every statement issued through this class filters on the owner passed at
    construction; inserts always carry it. Subclasses set:
      - model: mapped class with an owner_id column
      - search_fields: columns matched case-insensitively by `search`
      - default_order_by / default_ascending: ordering when none is requested
    """

    model: ClassVar[Type[Any]]
    search_fields: ClassVar[Sequence[str]] = ()
    default_order_by: ClassVar[str] = "created_at"
    default_ascending: ClassVar[bool] = False
    default_limit: ClassVar[int] = 50
    protected_fields: ClassVar[frozenset] = frozenset({"id", "owner_id", "created_at", "updated_at"})

    def __init__(self, session: AsyncSession, owner_id: UUID) -> None:
        super().__init__(session)
        self.owner_id = owner_id

    @property
    def resource_name(self) -> str:
        return self.model.__tablename__

    def _column(self, name: str):
        column = self.model.__table__.columns.get(name)
        if column is None:
            raise BadRequestError(f"Unknown field '{name}' for {self.resource_name}")
        return getattr(self.model, name)

    def scoped(self):
        """Return a SELECT on the model restricted to the current owner."""
        return select(self.model).where(self.model.owner_id == self.owner_id)

    def _apply_filters(self, stmt, filters: Optional[Mapping[str, Any]]):
        for key, value in (filters or {}).items():
            if value is None:
                continue
            stmt = stmt.where(self._column(key) == value)
        return stmt

    def _apply_search(self, stmt, search: Optional[str]):
        if search and self.search_fields:
            like = f"%{search.strip()}%"
            stmt = stmt.where(or_(*[self._column(f).ilike(like) for f in self.search_fields]))
        return stmt

    # PUBLIC_INTERFACE
    async def find_all(
        self,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        search: Optional[str] = None,
        order_by: Optional[str] = None,
        ascending: Optional[bool] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[ModelT]:
        """
        List owned rows with optional search, equality filters, ordering and pagination.

        Raises:
            BadRequestError: when order_by or a filter key is not a column of the model.
        """
        stmt = self._apply_search(self._apply_filters(self.scoped(), filters), search)
        column = self._column(order_by or self.default_order_by)
        asc = self.default_ascending if ascending is None else ascending
        stmt = stmt.order_by(column.asc() if asc else column.desc())
        stmt = stmt.offset(offset).limit(limit or self.default_limit)
        res = await self.scalars(stmt)
        return list(res)

    # PUBLIC_INTERFACE
    async def count(self, filters: Optional[Mapping[str, Any]] = None, search: Optional[str] = None) -> int:
        """Count owned rows matching the filters."""
        inner = self._apply_search(self._apply_filters(self.scoped(), filters), search).subquery()
        return int(await self.scalar(select(func.count()).select_from(inner)) or 0)

    # PUBLIC_INTERFACE
    async def find_by_id_or_none(self, entity_id: UUID) -> Optional[ModelT]:
        """Return the owned row with this id, or None."""
        stmt = self.scoped().where(self.model.id == entity_id)
        return await self.scalar_one_or_none(stmt)

    # PUBLIC_INTERFACE
    async def find_by_id(self, entity_id: UUID) -> ModelT:
        """Return the owned row with this id; raise NotFoundError otherwise."""
        entity = await self.find_by_id_or_none(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.resource_name} not found")
        return entity

    def locked_by_id(self, entity_id: UUID):
        """SELECT ... FOR UPDATE of one owned row, overwriting any state already loaded in the session."""
        return (
            self.scoped()
            .where(self.model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    # PUBLIC_INTERFACE
    async def find_by_id_for_update(self, entity_id: UUID) -> ModelT:
        """
        Return the owned row with this id, row-locked until the transaction ends.

        Read-check-write sequences on balances and counters go through this so
        concurrent writers queue on the row instead of overwriting each other.
        """
        entity = await self.scalar_one_or_none(self.locked_by_id(entity_id))
        if entity is None:
            raise NotFoundError(f"{self.resource_name} not found")
        return entity

    async def exists(self, entity_id: UUID) -> bool:
        return await self.find_by_id_or_none(entity_id) is not None

    def build(self, values: Mapping[str, Any]) -> ModelT:
        """Instantiate (without adding) a model row owned by the current owner."""
        data: Dict[str, Any] = {k: v for k, v in values.items() if k not in self.protected_fields}
        for key in data:
            self._column(key)
        return self.model(**data, owner_id=self.owner_id)

    # PUBLIC_INTERFACE
    async def create(self, values: Mapping[str, Any]) -> ModelT:
        """Insert a row; owner_id always comes from the repository, never from values."""
        entity = self.build(values)
        await self.add(entity)
        await self.commit()
        await self.refresh(entity)
        return entity

    def apply(self, entity: ModelT, values: Mapping[str, Any]) -> ModelT:
        """Assign the given columns on an entity, skipping protected fields."""
        for key, value in values.items():
            if key in self.protected_fields:
                continue
            self._column(key)
            setattr(entity, key, value)
        return entity

    # PUBLIC_INTERFACE
    async def update(self, entity_id: UUID, values: Mapping[str, Any]) -> ModelT:
        """Update the given columns of an owned row; NotFoundError if not owned or missing."""
        entity = await self.find_by_id(entity_id)
        self.apply(entity, values)
        await self.commit()
        await self.refresh(entity)
        return entity

    # PUBLIC_INTERFACE
    async def delete(self, entity_id: UUID) -> None:
        """Delete an owned row; NotFoundError if not owned or missing."""
        stmt = delete(self.model).where(
            self.model.owner_id == self.owner_id, self.model.id == entity_id
        )
        result = await self.execute(stmt)
        if not result.rowcount:
            await self.session.rollback()
            raise NotFoundError(f"{self.resource_name} not found")
        await self.commit()
