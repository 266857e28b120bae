"""
Reference directories (``order_kernel.domain.directory``).

Read-only lookups for departments, production stages and staff.  They are
passed explicitly into the production tracker and the transition engine;
nothing in the engine closes over a module-level directory or keeps one
beyond a single call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping


@dataclass(frozen=True)
class Department:
    code: str
    name: str


@dataclass(frozen=True)
class Stage:
    """A production stage template; ``department_code`` scopes where it applies."""

    code: str
    name: str
    department_code: str | None = None


@dataclass(frozen=True)
class StaffMember:
    staff_id: str
    name: str
    departments: tuple[str, ...] = ()
    role: str = "worker"
    is_active: bool = True

    def belongs_to(self, department_code: str | None) -> bool:
        return department_code is not None and department_code in self.departments


@dataclass(frozen=True)
class ReferenceDirectory:
    """Immutable view over the department, stage and staff directories."""

    departments: Mapping[str, Department] = field(default_factory=lambda: MappingProxyType({}))
    stages: Mapping[str, Stage] = field(default_factory=lambda: MappingProxyType({}))
    staff: Mapping[str, StaffMember] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        departments: Iterable[Department] = (),
        stages: Iterable[Stage] = (),
        staff: Iterable[StaffMember] = (),
    ) -> ReferenceDirectory:
        return cls(
            departments=MappingProxyType({d.code: d for d in departments}),
            stages=MappingProxyType({s.code: s for s in stages}),
            staff=MappingProxyType({m.staff_id: m for m in staff}),
        )

    def has_department(self, code: str | None) -> bool:
        return code is not None and code in self.departments

    def has_stage(self, code: str) -> bool:
        return code in self.stages

    def stage_name(self, code: str) -> str | None:
        stage = self.stages.get(code)
        return stage.name if stage else None

    def stages_for_department(self, department_code: str | None) -> tuple[Stage, ...]:
        if department_code is None:
            return ()
        return tuple(
            s for s in self.stages.values()
            if s.department_code in (None, department_code)
        )
