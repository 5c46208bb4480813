"""Atomic insert-or-update keyed by a unique constraint.

Learn: The resolver never reads-then-writes. Each create-or-lookup is one
`INSERT ... ON CONFLICT (...) DO UPDATE ... RETURNING` statement, so when
two requests race on a never-seen key the database picks exactly one
inserter and turns the other into an update of the winner's row.

Knowing whether *this* statement inserted is the other half:

- PostgreSQL: a freshly inserted tuple has `xmax = 0`; the conflict branch
  locks the existing tuple and leaves a non-zero xmax. We return that as
  an explicit `inserted` column.
- Other dialects (SQLite in tests): the insert writes one timestamp into
  both created_at and updated_at, the update branch writes a fresh one
  into updated_at only, so equality means "inserted".
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from sqlalchemy import Boolean, literal_column
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.db.models import Base, utcnow

ModelT = TypeVar("ModelT", bound=Base)

_INSERT_CONSTRUCTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _attrs(model: type[Base], values: Mapping[str, Any]) -> dict:
    """Map ORM attribute names to attributes (meta → "metadata" column)."""
    return {getattr(model, key): value for key, value in values.items()}


async def upsert(
    db: AsyncSession,
    model: type[ModelT],
    *,
    conflict_on: Iterable[str],
    insert_values: Mapping[str, Any],
    update_values: Mapping[str, Any],
) -> tuple[ModelT, bool]:
    """Insert a row or update the one holding the same unique key.

    insert_values are used only when the key is new; update_values are
    applied only on conflict (updated_at is always bumped). Returns the
    resulting ORM object and whether this call inserted it.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERT_CONSTRUCTS[dialect]
    except KeyError:
        raise RuntimeError(
            f"upsert needs one of {sorted(_INSERT_CONSTRUCTS)} as the database, got {dialect}"
        ) from None

    now = utcnow()
    stmt = insert(model).values(
        _attrs(model, {**insert_values, "created_at": now, "updated_at": now})
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_on),
        set_=_attrs(model, {**update_values, "updated_at": now}),
    )

    if dialect == "postgresql":
        inserted_flag = literal_column("xmax = 0", Boolean).label("inserted")
        result = await db.execute(
            stmt.returning(model, inserted_flag),
            execution_options={"populate_existing": True},
        )
        obj, inserted = result.one()
        return obj, bool(inserted)

    result = await db.execute(
        stmt.returning(model),
        execution_options={"populate_existing": True},
    )
    obj = result.scalar_one()
    return obj, obj.created_at == obj.updated_at
