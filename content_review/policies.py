"""
Row-level access policies for profiles and content items.

Every read and write against ``profiles`` and ``content_items`` goes through
a :class:`PolicyEngine`. Policies are permissive: a row is visible (or a
write allowed) when any policy registered for the table and command passes.
A table with no policy for a command denies everything.

The admin check is deliberately *not* a policy. :func:`is_admin` reads the
caller's own profile row directly, outside the engine, so a ``profiles``
policy can ask "is this caller an admin?" without scoping a query on
``profiles`` again. The engine refuses such self-referential scoping with
:class:`PolicyRecursionError` instead of recursing.
"""
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy import false, inspect, or_, select, true
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql.elements import ColumnElement

from .lifecycle import REVIEW_COLUMNS
from .logging_config import policy_logger
from .models.content_item import ContentItem
from .models.profile import Profile

SELECT = "select"
INSERT = "insert"
UPDATE = "update"


class AuthorizationDenied(Exception):
    def __init__(self, table: str, command: str, principal_id: Optional[str]):
        self.table = table
        self.command = command
        self.principal_id = principal_id
        super().__init__(f"{command} on {table} denied for principal {principal_id}")


class PolicyRecursionError(RuntimeError):
    """A policy tried to scope a query on the table it is guarding."""


def is_admin(db: Session, principal_id: Optional[str]) -> bool:
    """Privileged admin check: a single primary-key lookup on ``profiles``.

    Runs with the session's own rights and never consults the policy
    engine, so it is safe to call from inside any policy.
    """
    if not principal_id:
        return False
    flag = db.execute(
        select(Profile.is_admin).where(Profile.id == principal_id)
    ).scalar_one_or_none()
    return bool(flag)


class PolicyContext:
    """The requesting principal, with its admin flag resolved at most once."""

    def __init__(self, db: Session, principal_id: Optional[str]):
        self.db = db
        self.principal_id = principal_id
        self._is_admin = None

    @property
    def is_admin(self) -> bool:
        if self._is_admin is None:
            self._is_admin = is_admin(self.db, self.principal_id)
        return self._is_admin


UsingFn = Callable[[PolicyContext], ColumnElement]
CheckFn = Callable[[PolicyContext, object], bool]


@dataclass(frozen=True)
class Policy:
    """One permissive rule.

    ``using`` filters existing rows (reads, and the target row of an update).
    ``check`` is evaluated against the row as it would be after an insert or
    update. ``columns`` limits which columns an update may change; ``None``
    means all of them.
    """
    name: str
    model: type
    command: str
    using: Optional[UsingFn] = None
    check: Optional[CheckFn] = None
    columns: Optional[FrozenSet[str]] = None

    @property
    def table(self) -> str:
        return self.model.__tablename__


_evaluating: ContextVar[FrozenSet[str]] = ContextVar("policy_evaluating", default=frozenset())


@contextmanager
def _guard(table: str):
    active = _evaluating.get()
    if table in active:
        raise PolicyRecursionError(f"Policy on '{table}' queried '{table}' through the policy engine")
    token = _evaluating.set(active | {table})
    try:
        yield
    finally:
        _evaluating.reset(token)


class PolicyEngine:
    def __init__(self, policies: Iterable[Policy] = ()):
        self._policies: Dict[Tuple[str, str], List[Policy]] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: Policy) -> None:
        self._policies.setdefault((policy.table, policy.command), []).append(policy)

    def policies_for(self, model: type, command: str) -> List[Policy]:
        return list(self._policies.get((model.__tablename__, command), []))

    def using_clause(self, ctx: PolicyContext, model: type, command: str = SELECT) -> ColumnElement:
        policies = [p for p in self.policies_for(model, command) if p.using is not None]
        if not policies:
            return false()
        with _guard(model.__tablename__):
            return or_(*[p.using(ctx) for p in policies])

    def query(self, ctx: PolicyContext, model: type) -> Query:
        """A query over ``model`` restricted to the rows ``ctx`` may read."""
        return ctx.db.query(model).filter(self.using_clause(ctx, model, SELECT))

    def get(self, ctx: PolicyContext, model: type, row_id):
        return self.query(ctx, model).filter(model.id == row_id).first()

    def authorize_insert(self, ctx: PolicyContext, model: type, values: dict) -> None:
        row = SimpleNamespace(**values)
        with _guard(model.__tablename__):
            allowed = any(
                p.check is None or p.check(ctx, row)
                for p in self.policies_for(model, INSERT)
            )
        if not allowed:
            self._deny(ctx, model, INSERT)

    def authorize_update(self, ctx: PolicyContext, instance, changes: dict) -> None:
        """Allow ``changes`` to ``instance`` if one UPDATE policy admits all of it.

        The policy's ``using`` is evaluated against the stored row, its
        ``check`` against the row with ``changes`` applied, and every changed
        column must be within its ``columns``.
        """
        model = type(instance)
        mapper = inspect(model)
        proposed = {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
        proposed.update(changes)
        row = SimpleNamespace(**proposed)
        changed = frozenset(changes)

        for policy in self.policies_for(model, UPDATE):
            if policy.columns is not None and not changed <= policy.columns:
                continue
            if policy.using is not None and not self._row_matches(ctx, instance, policy):
                continue
            with _guard(model.__tablename__):
                if policy.check is not None and not policy.check(ctx, row):
                    continue
            policy_logger.decision(
                True,
                "Update allowed",
                policy=policy.name,
                table=model.__tablename__,
                principal_id=ctx.principal_id,
            )
            return
        self._deny(ctx, model, UPDATE)

    def _row_matches(self, ctx: PolicyContext, instance, policy: Policy) -> bool:
        model = type(instance)
        with _guard(model.__tablename__):
            clause = policy.using(ctx)
        with ctx.db.no_autoflush:
            match = ctx.db.query(model.id).filter(model.id == instance.id, clause).first()
        return match is not None

    def _deny(self, ctx: PolicyContext, model: type, command: str):
        policy_logger.decision(
            False,
            "Write denied",
            table=model.__tablename__,
            command=command,
            principal_id=ctx.principal_id,
        )
        raise AuthorizationDenied(model.__tablename__, command, ctx.principal_id)


# ============================================================
# POLICY PREDICATES
# ============================================================

def admin_only(ctx: PolicyContext) -> ColumnElement:
    return true() if ctx.is_admin else false()


def own_profile(ctx: PolicyContext) -> ColumnElement:
    return Profile.id == ctx.principal_id


def assigned_to_caller(ctx: PolicyContext) -> ColumnElement:
    return ContentItem.assigned_to == ctx.principal_id


def assigned_or_admin(ctx: PolicyContext) -> ColumnElement:
    if ctx.is_admin:
        return true()
    return assigned_to_caller(ctx)


def caller_is_admin(ctx: PolicyContext, row) -> bool:
    return ctx.is_admin


def row_assigned_to_caller(ctx: PolicyContext, row) -> bool:
    return row.assigned_to is not None and row.assigned_to == ctx.principal_id


def row_assigned_or_admin(ctx: PolicyContext, row) -> bool:
    return ctx.is_admin or row_assigned_to_caller(ctx, row)


DEFAULT_POLICIES = [
    Policy("Allow users to read own profile", Profile, SELECT, using=own_profile),
    Policy("Allow admins to read all profiles", Profile, SELECT, using=admin_only),
    Policy("Allow users to read assigned content", ContentItem, SELECT, using=assigned_or_admin),
    Policy("Allow admins to create content", ContentItem, INSERT, check=caller_is_admin),
    Policy(
        "Allow content management",
        ContentItem,
        UPDATE,
        using=assigned_or_admin,
        check=row_assigned_or_admin,
        columns=REVIEW_COLUMNS,
    ),
    Policy("Allow admins to edit content", ContentItem, UPDATE, using=admin_only, check=caller_is_admin),
    Policy(
        "Allow assignee to record rejection",
        ContentItem,
        UPDATE,
        using=assigned_to_caller,
        check=row_assigned_to_caller,
        columns=REVIEW_COLUMNS,
    ),
]

policy_engine = PolicyEngine(DEFAULT_POLICIES)


def get_policy_engine() -> PolicyEngine:
    return policy_engine
