"""
Scope Filtering
Turns an advisory grant scope into a data-filter hint for callers
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from schoolguard.permissions.catalog import SchoolLevel, Scope
from schoolguard.permissions.context import PermissionContext

# School level -> grade level values stored on classes
LEVEL_GRADE_VALUES: Dict[SchoolLevel, Tuple[str, ...]] = {
    SchoolLevel.KINDERGARTEN: ("kindergarten",),
    SchoolLevel.ELEMENTARY: ("elementary",),
    SchoolLevel.MIDDLE: ("college",),
    SchoolLevel.HIGH_SCHOOL: ("high_school",),
}


@dataclass(frozen=True)
class ScopeFilter:
    """
    Restriction a caller must apply to its own data query

    Exactly one of the tuple fields is set unless the filter is unrestricted
    or matches nothing.
    """

    unrestricted: bool = False
    match_nothing: bool = False
    grade_levels: Optional[Tuple[str, ...]] = None
    class_ids: Optional[Tuple[str, ...]] = None
    student_ids: Optional[Tuple[str, ...]] = None

    def as_dict(self) -> dict:
        if self.unrestricted:
            return {}
        if self.match_nothing:
            return {"match": "none"}
        if self.grade_levels is not None:
            return {"grade_levels": list(self.grade_levels)}
        if self.class_ids is not None:
            return {"class_ids": list(self.class_ids)}
        return {"student_ids": list(self.student_ids or ())}


NO_ACCESS = ScopeFilter(match_nothing=True)


def scope_applicable(scope: Scope, context: PermissionContext) -> bool:
    """Whether the context carries the attributes the scope narrows on"""
    if scope == Scope.ALL:
        return True
    if scope == Scope.OWN_LEVEL:
        return context.school_level is not None
    if scope == Scope.OWN_CLASSES:
        return bool(context.assigned_class_ids)
    if scope == Scope.OWN_CHILDREN:
        return bool(context.children_ids)
    return False


def scope_filter(scope: Optional[Scope], context: PermissionContext) -> ScopeFilter:
    """Build the filter hint for a granted scope"""
    if scope is None or not scope_applicable(scope, context):
        return NO_ACCESS
    if scope == Scope.ALL:
        return ScopeFilter(unrestricted=True)
    if scope == Scope.OWN_LEVEL:
        return ScopeFilter(grade_levels=LEVEL_GRADE_VALUES[context.school_level])
    if scope == Scope.OWN_CLASSES:
        return ScopeFilter(class_ids=context.assigned_class_ids)
    return ScopeFilter(student_ids=context.children_ids)
