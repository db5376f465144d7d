from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Protocol

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .scope import Scope

logger = logging.getLogger(__name__)


class Entity(str, Enum):
    ATTENDANCE = "attendance"
    LEAVE = "leave"
    TASK = "task"
    PERFORMANCE = "performance"
    EMPLOYEE = "employee"
    PAYROLL = "payroll"
    DEPARTMENT = "department"
    PROJECT = "project"
    LOCATION = "location"


class Action(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    SUBMIT = "submit"
    ACKNOWLEDGE = "acknowledge"
    COMMENT = "comment"
    REPORT = "report"


class Reach(str, Enum):
    """How far a role's permission extends over records."""

    ALL = "all"
    TEAM = "team"  # direct reports, self, and records the caller authored
    REPORTS = "reports"  # direct reports only
    OWN = "own"
    OWN_OR_AUTHORED = "own_or_authored"
    AUTHORED = "authored"
    TARGET_ONLY = "target_only"  # the reviewed employee, never the author


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role
    employee_id: Optional[int] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Target:
    """The ownership facts of one record: who it belongs to, who authored it."""

    owner_ids: FrozenSet[int]
    author_id: Optional[int] = None

    @classmethod
    def owned_by(cls, *owner_ids: Optional[int], author_id: Optional[int] = None) -> "Target":
        return cls(owner_ids=frozenset(int(o) for o in owner_ids if o is not None), author_id=author_id)

    @classmethod
    def of_many(cls, owner_ids: Iterable[int], author_id: Optional[int] = None) -> "Target":
        return cls(owner_ids=frozenset(int(o) for o in owner_ids), author_id=author_id)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""


_PRIV = {Role.ADMIN: Reach.ALL, Role.HR_MANAGER: Reach.ALL}


def _rule(manager: Optional[Reach] = None, employee: Optional[Reach] = None) -> dict:
    rule: dict = dict(_PRIV)
    if manager is not None:
        rule[Role.MANAGER] = manager
    if employee is not None:
        rule[Role.EMPLOYEE] = employee
    return rule


RULES: dict[tuple[Entity, Action], dict[Role, Reach]] = {
    # attendance
    (Entity.ATTENDANCE, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.ATTENDANCE, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.ATTENDANCE, Action.CREATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.ATTENDANCE, Action.UPDATE): _rule(Reach.TEAM),
    (Entity.ATTENDANCE, Action.REPORT): _rule(Reach.TEAM),
    # leave
    (Entity.LEAVE, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LEAVE, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LEAVE, Action.CREATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LEAVE, Action.UPDATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LEAVE, Action.CANCEL): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LEAVE, Action.APPROVE): _rule(Reach.REPORTS),
    (Entity.LEAVE, Action.REJECT): _rule(Reach.REPORTS),
    (Entity.LEAVE, Action.REPORT): _rule(Reach.TEAM, Reach.OWN),
    # tasks: owner = assignees, author = assigner
    (Entity.TASK, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.TASK, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.TASK, Action.CREATE): _rule(Reach.TEAM),
    (Entity.TASK, Action.UPDATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.TASK, Action.DELETE): _rule(Reach.AUTHORED),
    (Entity.TASK, Action.COMMENT): _rule(Reach.TEAM, Reach.OWN_OR_AUTHORED),
    (Entity.TASK, Action.REPORT): _rule(Reach.AUTHORED),
    # performance: owner = reviewed employee, author = reviewer
    (Entity.PERFORMANCE, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PERFORMANCE, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PERFORMANCE, Action.CREATE): _rule(Reach.REPORTS),
    (Entity.PERFORMANCE, Action.UPDATE): _rule(Reach.AUTHORED),
    (Entity.PERFORMANCE, Action.SUBMIT): _rule(Reach.AUTHORED, Reach.AUTHORED),
    (Entity.PERFORMANCE, Action.APPROVE): _rule(),
    (Entity.PERFORMANCE, Action.ACKNOWLEDGE): {role: Reach.TARGET_ONLY for role in Role},
    (Entity.PERFORMANCE, Action.COMMENT): {role: Reach.TARGET_ONLY for role in Role},
    (Entity.PERFORMANCE, Action.REPORT): _rule(Reach.REPORTS),
    # employees: owner = the employee record itself
    (Entity.EMPLOYEE, Action.LIST): _rule(Reach.TEAM),
    (Entity.EMPLOYEE, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.EMPLOYEE, Action.CREATE): _rule(),
    (Entity.EMPLOYEE, Action.UPDATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.EMPLOYEE, Action.DELETE): _rule(),
    (Entity.EMPLOYEE, Action.REPORT): _rule(Reach.TEAM),
    # payroll
    (Entity.PAYROLL, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PAYROLL, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PAYROLL, Action.CREATE): _rule(),
    (Entity.PAYROLL, Action.UPDATE): _rule(),
    (Entity.PAYROLL, Action.REPORT): _rule(),
    # departments
    (Entity.DEPARTMENT, Action.LIST): _rule(Reach.ALL),
    (Entity.DEPARTMENT, Action.READ): _rule(Reach.ALL),
    (Entity.DEPARTMENT, Action.CREATE): _rule(),
    (Entity.DEPARTMENT, Action.UPDATE): _rule(),
    (Entity.DEPARTMENT, Action.DELETE): _rule(),
    # projects: owner = team members, author = project manager
    (Entity.PROJECT, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PROJECT, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.PROJECT, Action.CREATE): _rule(Reach.AUTHORED),
    (Entity.PROJECT, Action.UPDATE): _rule(Reach.AUTHORED),
    (Entity.PROJECT, Action.DELETE): _rule(Reach.AUTHORED),
    # location pings
    (Entity.LOCATION, Action.LIST): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LOCATION, Action.READ): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LOCATION, Action.CREATE): _rule(Reach.TEAM, Reach.OWN),
    (Entity.LOCATION, Action.REPORT): _rule(Reach.TEAM),
    (Entity.LOCATION, Action.DELETE): _rule(),
}

# Entities whose records carry an author distinct from the owner.
AUTHORED_ENTITIES = frozenset({Entity.TASK, Entity.PERFORMANCE, Entity.PROJECT})


def reach_for(role: Role, entity: Entity, action: Action) -> Optional[Reach]:
    return RULES.get((entity, action), {}).get(role)


def evaluate(
    identity: Identity,
    entity: Entity,
    action: Action,
    target: Optional[Target] = None,
    reports: FrozenSet[int] = frozenset(),
) -> Decision:
    """Decide whether ``identity`` may perform ``action`` on ``entity``.

    Without a ``target`` only the role is checked (e.g. listing or creating).
    With one, the role's reach is compared to the record's owners and author.
    """
    reach = reach_for(identity.role, entity, action)
    if reach is None:
        return Decision(False, f"role '{identity.role.value}' may not {action.value} {entity.value}")
    if target is None or reach == Reach.ALL:
        return Decision(True)

    me = identity.employee_id
    if me is None:
        return Decision(False, "no employee record is linked to this account")

    owners = target.owner_ids
    authored = target.author_id is not None and int(target.author_id) == me

    if reach == Reach.TEAM:
        allowed = bool(owners & (reports | {me})) or authored
    elif reach == Reach.REPORTS:
        allowed = bool(owners & reports)
    elif reach == Reach.OWN:
        allowed = me in owners
    elif reach == Reach.OWN_OR_AUTHORED:
        allowed = me in owners or authored
    elif reach == Reach.AUTHORED:
        allowed = authored
    elif reach == Reach.TARGET_ONLY:
        allowed = me in owners
    else:
        allowed = False

    if allowed:
        return Decision(True)
    return Decision(False, f"{entity.value} is outside the {reach.value} reach of '{identity.role.value}'")


def scope_from_reach(identity: Identity, entity: Entity, reach: Optional[Reach], reports: FrozenSet[int]) -> Scope:
    if reach is None:
        return Scope.nobody()
    if reach == Reach.ALL:
        return Scope.everyone()

    me = identity.employee_id
    if me is None:
        return Scope.nobody()

    author = me if entity in AUTHORED_ENTITIES else None
    if reach == Reach.TEAM:
        return Scope.of(reports | {me}, authored_by=author)
    if reach == Reach.REPORTS:
        return Scope.of(reports)
    if reach in (Reach.OWN, Reach.TARGET_ONLY):
        return Scope.of({me})
    if reach == Reach.OWN_OR_AUTHORED:
        return Scope.of({me}, authored_by=author)
    if reach == Reach.AUTHORED:
        return Scope(employee_ids=frozenset(), authored_by=me)
    return Scope.nobody()


class DirectReports(Protocol):
    def list_direct_report_ids(self, manager_id: int) -> Iterable[int]:
        ...


class AccessPolicy:
    """Evaluates the rule table against live manager/report relationships."""

    def __init__(self, employees: DirectReports):
        self._employees = employees

    def reports_of(self, identity: Identity) -> FrozenSet[int]:
        if identity.role != Role.MANAGER or identity.employee_id is None:
            return frozenset()
        return frozenset(int(i) for i in self._employees.list_direct_report_ids(identity.employee_id))

    def check(self, identity: Identity, entity: Entity, action: Action, target: Optional[Target] = None) -> Decision:
        return evaluate(identity, entity, action, target, self.reports_of(identity) if target else frozenset())

    def can(self, identity: Identity, entity: Entity, action: Action, target: Optional[Target] = None) -> bool:
        return self.check(identity, entity, action, target).allowed

    def enforce(self, identity: Identity, entity: Entity, action: Action, target: Optional[Target] = None) -> None:
        decision = self.check(identity, entity, action, target)
        if not decision.allowed:
            logger.info("access denied user=%s %s/%s: %s", identity.user_id, entity.value, action.value, decision.reason)
            raise AuthorizationError("Access denied")

    def scope_for(self, identity: Identity, entity: Entity, action: Action = Action.LIST) -> Scope:
        reach = reach_for(identity.role, entity, action)
        return scope_from_reach(identity, entity, reach, self.reports_of(identity))
