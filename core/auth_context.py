from dataclasses import dataclass
from typing import Optional


# Who is calling; supplied by the external auth collaborator on every request
@dataclass(frozen=True)
class AuthContext:
    employee_id: str
    company_id: Optional[str] = None
    is_admin: bool = False

    def can_view_employee(self, employee_id: str) -> bool:
        return self.is_admin or self.employee_id == employee_id
