"""
Role/Permission Catalog
Closed enumerations and the default role -> permission grant table

Design principle: THE WALL. Academic staff has no default access to financial
resources and financial staff has none to academic resources. Only the
transversal roles (proprietaire, admin_systeme) cross both branches.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from schoolguard.core.exceptions import CatalogError


class Role(str, Enum):
    """Staff role. Exactly one per user."""

    # Transversal
    PROPRIETAIRE = "proprietaire"
    ADMIN_SYSTEME = "admin_systeme"
    # Academic
    PROVISEUR = "proviseur"
    CENSEUR = "censeur"
    SURVEILLANT_GENERAL = "surveillant_general"
    DIRECTEUR = "directeur"
    SECRETARIAT = "secretariat"
    PROFESSEUR_PRINCIPAL = "professeur_principal"
    ENSEIGNANT = "enseignant"
    # Financial
    COORDINATEUR = "coordinateur"
    COMPTABLE = "comptable"
    # Outside branches
    AGENT_RECOUVREMENT = "agent_recouvrement"
    GARDIEN = "gardien"


class Resource(str, Enum):
    """Protected domain object class"""

    # Academic
    STUDENTS = "students"
    STUDENT_ENROLLMENT = "student_enrollment"
    STUDENT_TRANSFER = "student_transfer"
    STUDENT_DOCUMENTS = "student_documents"
    GRADES = "grades"
    GRADE_APPROVAL = "grade_approval"
    REPORT_CARDS = "report_cards"
    ATTENDANCE = "attendance"
    ATTENDANCE_JUSTIFICATION = "attendance_justification"
    ATTENDANCE_REPORTS = "attendance_reports"
    ACADEMIC_REPORTS = "academic_reports"
    ACADEMIC_YEAR = "academic_year"
    CLASSES = "classes"
    SUBJECTS = "subjects"
    SCHEDULE = "schedule"
    TEACHERS_ASSIGNMENT = "teachers_assignment"
    STAFF_ASSIGNMENT = "staff_assignment"
    DISCIPLINE_RECORDS = "discipline_records"
    SANCTIONS = "sanctions"
    CLUB_ENROLLMENT = "club_enrollment"
    # Financial
    PAYMENT_RECORDING = "payment_recording"
    RECEIPTS = "receipts"
    STUDENT_BALANCE = "student_balance"
    FEE_STRUCTURE = "fee_structure"
    FEE_ASSIGNMENT = "fee_assignment"
    SAFE_BALANCE = "safe_balance"
    SAFE_EXPENSE = "safe_expense"
    SAFE_INCOME = "safe_income"
    DAILY_VERIFICATION = "daily_verification"
    BANK_TRANSFERS = "bank_transfers"
    FINANCIAL_REPORTS = "financial_reports"
    FINANCIAL_ANALYTICS = "financial_analytics"
    SALARY_RATES = "salary_rates"
    SALARY_PAYMENTS = "salary_payments"
    SALARY_ADVANCES = "salary_advances"
    # Shared (deliberate wall crossing)
    SALARY_HOURS = "salary_hours"
    # Administrative
    USER_ACCOUNTS = "user_accounts"
    STAFF = "staff"
    ROLE_ASSIGNMENT = "role_assignment"
    PERMISSION_OVERRIDES = "permission_overrides"
    AUDIT_LOGS = "audit_logs"
    ANNOUNCEMENTS = "announcements"
    SMS = "sms"
    SCHOOL_SETTINGS = "school_settings"
    SYSTEM_SETTINGS = "system_settings"
    DATA_EXPORT = "data_export"


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    EXPORT = "export"


class Scope(str, Enum):
    """Breadth of data a grant covers. Advisory filter hint, not a yes/no answer."""

    ALL = "all"
    OWN_LEVEL = "own_level"
    OWN_CLASSES = "own_classes"
    OWN_CHILDREN = "own_children"
    NONE = "none"


class SchoolLevel(str, Enum):
    KINDERGARTEN = "kindergarten"
    ELEMENTARY = "elementary"
    MIDDLE = "middle"
    HIGH_SCHOOL = "high_school"


class Branch(str, Enum):
    TRANSVERSAL = "transversal"
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    NONE = "none"


class ResourceBranch(str, Enum):
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    SHARED = "shared"
    ADMINISTRATIVE = "administrative"


class RoleScope(str, Enum):
    """Descriptive breadth of a role, shown in role listings"""

    ALL = "all"
    ALL_SECONDARY = "all_secondary"
    ALL_PRIMARY = "all_primary"
    OWN_CLASSES = "own_classes"
    LIMITED = "limited"
    NONE = "none"


@dataclass(frozen=True)
class RolePermission:
    """One row of the default grant table"""

    resource: Resource
    action: Action
    scope: Scope = Scope.ALL


@dataclass(frozen=True)
class RoleConfig:
    branch: Branch
    role_scope: RoleScope
    # None means wildcard: every (resource, action) with Scope.ALL
    permissions: Optional[Tuple[RolePermission, ...]]

    @property
    def is_wildcard(self) -> bool:
        return self.permissions is None


def _grants(resource: Resource, *actions: Action, scope: Scope = Scope.ALL) -> List[RolePermission]:
    return [RolePermission(resource, action, scope) for action in actions]


V, C, U, D, A, E = Action.VIEW, Action.CREATE, Action.UPDATE, Action.DELETE, Action.APPROVE, Action.EXPORT


RESOURCE_BRANCHES: Mapping[Resource, ResourceBranch] = MappingProxyType({
    **{r: ResourceBranch.ACADEMIC for r in (
        Resource.STUDENTS, Resource.STUDENT_ENROLLMENT, Resource.STUDENT_TRANSFER,
        Resource.STUDENT_DOCUMENTS, Resource.GRADES, Resource.GRADE_APPROVAL,
        Resource.REPORT_CARDS, Resource.ATTENDANCE, Resource.ATTENDANCE_JUSTIFICATION,
        Resource.ATTENDANCE_REPORTS, Resource.ACADEMIC_REPORTS, Resource.ACADEMIC_YEAR,
        Resource.CLASSES, Resource.SUBJECTS, Resource.SCHEDULE, Resource.TEACHERS_ASSIGNMENT,
        Resource.STAFF_ASSIGNMENT, Resource.DISCIPLINE_RECORDS, Resource.SANCTIONS,
        Resource.CLUB_ENROLLMENT,
    )},
    **{r: ResourceBranch.FINANCIAL for r in (
        Resource.PAYMENT_RECORDING, Resource.RECEIPTS, Resource.STUDENT_BALANCE,
        Resource.FEE_STRUCTURE, Resource.FEE_ASSIGNMENT, Resource.SAFE_BALANCE,
        Resource.SAFE_EXPENSE, Resource.SAFE_INCOME, Resource.DAILY_VERIFICATION,
        Resource.BANK_TRANSFERS, Resource.FINANCIAL_REPORTS, Resource.FINANCIAL_ANALYTICS,
        Resource.SALARY_RATES, Resource.SALARY_PAYMENTS, Resource.SALARY_ADVANCES,
    )},
    Resource.SALARY_HOURS: ResourceBranch.SHARED,
    **{r: ResourceBranch.ADMINISTRATIVE for r in (
        Resource.USER_ACCOUNTS, Resource.STAFF, Resource.ROLE_ASSIGNMENT,
        Resource.PERMISSION_OVERRIDES, Resource.AUDIT_LOGS, Resource.ANNOUNCEMENTS,
        Resource.SMS, Resource.SCHOOL_SETTINGS, Resource.SYSTEM_SETTINGS, Resource.DATA_EXPORT,
    )},
})


# ── Permission groups ───────────────────────────────────

STUDENT_VIEW = [
    *_grants(Resource.STUDENTS, V),
    *_grants(Resource.STUDENT_ENROLLMENT, V),
]

STUDENT_MANAGE = [
    *STUDENT_VIEW,
    *_grants(Resource.STUDENTS, U),
    *_grants(Resource.STUDENT_ENROLLMENT, C, U, D, A, E),
]

GRADE_MANAGE = [
    *_grants(Resource.GRADES, V, C, U, D),
    *_grants(Resource.REPORT_CARDS, E),
]

ATTENDANCE_MANAGE = _grants(Resource.ATTENDANCE, V, C, U)

ACADEMIC_SETUP = [
    *_grants(Resource.ACADEMIC_YEAR, C, U, D),
    *_grants(Resource.CLASSES, V, U),
    *_grants(Resource.TEACHERS_ASSIGNMENT, C, D),
    *_grants(Resource.SCHEDULE, V, C),
    *_grants(Resource.STAFF_ASSIGNMENT, U),
    *_grants(Resource.CLUB_ENROLLMENT, C),
]

ACADEMIC_REPORTS = [
    *_grants(Resource.ACADEMIC_REPORTS, V),
    *_grants(Resource.ATTENDANCE_REPORTS, V),
]

FINANCIAL_CAISSE = [
    *_grants(Resource.PAYMENT_RECORDING, C),
    *_grants(Resource.SAFE_EXPENSE, C),
    *_grants(Resource.RECEIPTS, E),
    *_grants(Resource.SAFE_BALANCE, C, U),
    *_grants(Resource.DAILY_VERIFICATION, C),
]

FINANCIAL_REPORTS = _grants(Resource.FINANCIAL_REPORTS, V)

SALARY_HOURS_SUBMIT = _grants(Resource.SALARY_HOURS, V, C, U)

FINANCIAL_SALARY = [
    *_grants(Resource.SALARY_HOURS, V, A),
    *_grants(Resource.SALARY_PAYMENTS, V, C, U, A),
    *_grants(Resource.SALARY_ADVANCES, V, C, U),
    *_grants(Resource.SALARY_RATES, V),
]

SALARY_RATES_ADMIN = _grants(Resource.SALARY_RATES, V, C, U, D)

TEACHING = [
    *_grants(Resource.STUDENTS, V, scope=Scope.OWN_CLASSES),
    *_grants(Resource.STUDENT_ENROLLMENT, V, scope=Scope.OWN_CLASSES),
    *_grants(Resource.GRADES, V, C, U, D, scope=Scope.OWN_CLASSES),
    *_grants(Resource.ATTENDANCE, V, C, U, scope=Scope.OWN_CLASSES),
    *_grants(Resource.SCHEDULE, V, scope=Scope.OWN_CLASSES),
]


# ── Role -> permissions mapping ─────────────────────────

ROLE_CONFIGS: Mapping[Role, RoleConfig] = MappingProxyType({
    Role.PROPRIETAIRE: RoleConfig(Branch.TRANSVERSAL, RoleScope.ALL, None),
    Role.ADMIN_SYSTEME: RoleConfig(Branch.TRANSVERSAL, RoleScope.ALL, None),

    # Proviseur: full academic for collège & lycée
    Role.PROVISEUR: RoleConfig(Branch.ACADEMIC, RoleScope.ALL_SECONDARY, (
        *STUDENT_MANAGE, *GRADE_MANAGE, *ATTENDANCE_MANAGE, *ACADEMIC_SETUP,
        *ACADEMIC_REPORTS, *SALARY_HOURS_SUBMIT,
    )),
    # Censeur: pedagogy, collège & lycée
    Role.CENSEUR: RoleConfig(Branch.ACADEMIC, RoleScope.ALL_SECONDARY, (
        *STUDENT_VIEW, *GRADE_MANAGE, *SALARY_HOURS_SUBMIT,
        *_grants(Resource.SCHEDULE, V, C),
        *_grants(Resource.TEACHERS_ASSIGNMENT, C, D),
        *_grants(Resource.ATTENDANCE, V),
        *_grants(Resource.ACADEMIC_REPORTS, V),
    )),
    # Surveillant général: discipline, collège & lycée
    Role.SURVEILLANT_GENERAL: RoleConfig(Branch.ACADEMIC, RoleScope.ALL_SECONDARY, (
        *STUDENT_VIEW, *ATTENDANCE_MANAGE,
        *_grants(Resource.ATTENDANCE_REPORTS, V),
    )),
    # Directeur: maternelle & primaire
    Role.DIRECTEUR: RoleConfig(Branch.ACADEMIC, RoleScope.ALL_PRIMARY, (
        *STUDENT_MANAGE, *GRADE_MANAGE, *ATTENDANCE_MANAGE, *ACADEMIC_SETUP,
        *ACADEMIC_REPORTS, *SALARY_HOURS_SUBMIT,
    )),
    # Secrétariat: enrollments only, maternelle & primaire
    Role.SECRETARIAT: RoleConfig(Branch.ACADEMIC, RoleScope.ALL_PRIMARY, (
        *STUDENT_VIEW,
        *_grants(Resource.STUDENT_ENROLLMENT, C, U, E),
    )),
    Role.PROFESSEUR_PRINCIPAL: RoleConfig(Branch.ACADEMIC, RoleScope.OWN_CLASSES, (
        *TEACHING,
        *_grants(Resource.REPORT_CARDS, E, scope=Scope.OWN_CLASSES),
    )),
    Role.ENSEIGNANT: RoleConfig(Branch.ACADEMIC, RoleScope.OWN_CLASSES, tuple(TEACHING)),

    # Coordinateur général: finance head, bank + safe
    Role.COORDINATEUR: RoleConfig(Branch.FINANCIAL, RoleScope.ALL, (
        *FINANCIAL_CAISSE, *FINANCIAL_REPORTS, *FINANCIAL_SALARY, *SALARY_RATES_ADMIN,
        *_grants(Resource.BANK_TRANSFERS, V, C),
        *_grants(Resource.AUDIT_LOGS, V),
        *_grants(Resource.STUDENT_BALANCE, V),
    )),
    # Comptable: cash desk + safe, no bank
    Role.COMPTABLE: RoleConfig(Branch.FINANCIAL, RoleScope.ALL, (
        *FINANCIAL_CAISSE, *FINANCIAL_REPORTS, *FINANCIAL_SALARY,
        *_grants(Resource.STUDENT_BALANCE, V),
    )),

    Role.AGENT_RECOUVREMENT: RoleConfig(Branch.NONE, RoleScope.LIMITED, (
        *_grants(Resource.STUDENT_BALANCE, V),
        *_grants(Resource.RECEIPTS, V),
    )),
    Role.GARDIEN: RoleConfig(Branch.NONE, RoleScope.NONE, ()),
})


def build_grant_table(
    configs: Mapping[Role, RoleConfig],
) -> Mapping[Tuple[Role, Resource, Action], Scope]:
    """
    Flatten explicit role grants into an immutable (role, resource, action) -> scope map

    Wildcard roles are not expanded; default_scope() answers for them directly.

    Raises:
        CatalogError: If one (role, resource, action) carries two different scopes
    """
    table: Dict[Tuple[Role, Resource, Action], Scope] = {}
    for role, config in configs.items():
        if config.is_wildcard:
            continue
        for grant in config.permissions:
            key = (role, grant.resource, grant.action)
            existing = table.get(key)
            if existing is not None and existing != grant.scope:
                raise CatalogError(
                    message="Conflicting scopes in default grant table",
                    details={
                        "role": role.value,
                        "resource": grant.resource.value,
                        "action": grant.action.value,
                        "scopes": [existing.value, grant.scope.value],
                    },
                )
            table[key] = grant.scope
    return MappingProxyType(table)


DEFAULT_GRANTS = build_grant_table(ROLE_CONFIGS)

ACADEMIC_ROLES = tuple(r for r, c in ROLE_CONFIGS.items() if c.branch == Branch.ACADEMIC)
FINANCIAL_ROLES = tuple(r for r, c in ROLE_CONFIGS.items() if c.branch == Branch.FINANCIAL)
TRANSVERSAL_ROLES = tuple(r for r, c in ROLE_CONFIGS.items() if c.branch == Branch.TRANSVERSAL)
TEACHING_ROLES = (Role.ENSEIGNANT, Role.PROFESSEUR_PRINCIPAL)


# ── Lookups ─────────────────────────────────────────────

def default_scope(role: Role, resource: Resource, action: Action) -> Optional[Scope]:
    """
    Default grant for a role

    Returns:
        The granted scope, or None when the role is denied by default
    """
    config = ROLE_CONFIGS.get(role)
    if config is None:
        return None
    if config.is_wildcard:
        return Scope.ALL
    return DEFAULT_GRANTS.get((role, resource, action))


def role_branch(role: Role) -> Branch:
    config = ROLE_CONFIGS.get(role)
    return config.branch if config else Branch.NONE


def resource_branch(resource: Resource) -> ResourceBranch:
    return RESOURCE_BRANCHES[resource]


def role_grants(role: Role) -> Tuple[RolePermission, ...]:
    """Full default grant list of a role, sorted by resource then action"""
    config = ROLE_CONFIGS[role]
    if config.is_wildcard:
        grants = [RolePermission(r, a, Scope.ALL) for r in Resource for a in Action]
    else:
        grants = list({(g.resource, g.action): g for g in config.permissions}.values())
    order = {a: i for i, a in enumerate(Action)}
    return tuple(sorted(grants, key=lambda g: (g.resource.value, order[g.action])))


# ── THE WALL ────────────────────────────────────────────

_FORBIDDEN_BRANCH = {
    Branch.ACADEMIC: ResourceBranch.FINANCIAL,
    Branch.FINANCIAL: ResourceBranch.ACADEMIC,
}


def wall_violations(
    configs: Mapping[Role, RoleConfig] = ROLE_CONFIGS,
) -> List[Tuple[Role, RolePermission]]:
    """List every default grant that crosses the wall"""
    violations = []
    for role, config in configs.items():
        forbidden = _FORBIDDEN_BRANCH.get(config.branch)
        if forbidden is None or config.is_wildcard:
            continue
        for grant in config.permissions:
            if RESOURCE_BRANCHES[grant.resource] == forbidden:
                violations.append((role, grant))
    return violations


def verify_wall(configs: Mapping[Role, RoleConfig] = ROLE_CONFIGS) -> None:
    """
    Check the wall over the whole catalog

    Raises:
        CatalogError: If any academic role holds a financial grant or vice versa
    """
    missing = [r.value for r in Resource if r not in RESOURCE_BRANCHES]
    if missing:
        raise CatalogError(
            message="Resources without a branch",
            details={"resources": missing},
        )

    violations = wall_violations(configs)
    if violations:
        raise CatalogError(
            message="Default grant table violates the academic/financial wall",
            details={
                "violations": [
                    f"{role.value}:{grant.resource.value}:{grant.action.value}"
                    for role, grant in violations
                ]
            },
        )


# ── Route-prefix enforcement ────────────────────────────

SALARY_ACADEMIC_ROLES = (Role.PROVISEUR, Role.CENSEUR, Role.DIRECTEUR)
ACADEMIC_ADMIN_ROLES = (Role.PROVISEUR, Role.CENSEUR, Role.DIRECTEUR)


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_role_allowed_for_route(role: Optional[Union[Role, str]], path: str) -> bool:
    """Coarse branch check of a UI/API path prefix for a role"""
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False

    branch = role_branch(role)
    if branch == Branch.TRANSVERSAL:
        return True

    if _under(path, "/accounting"):
        # Academic heads submit salary hours across the wall
        if _under(path, "/accounting/salaries") and branch == Branch.ACADEMIC:
            return role in SALARY_ACADEMIC_ROLES
        return branch == Branch.FINANCIAL

    if _under(path, "/students"):
        return branch == Branch.ACADEMIC

    if _under(path, "/admin"):
        if _under(path, "/admin/users"):
            return False
        if _under(path, "/admin/salary-rates"):
            return role == Role.COORDINATEUR
        return role in ACADEMIC_ADMIN_ROLES

    if _under(path, "/dashboard"):
        return branch in (Branch.ACADEMIC, Branch.FINANCIAL)

    return True
