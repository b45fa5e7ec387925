"""
Manager authorization.

Voids and refunds need a PIN belonging to an active elevated-role
employee (manager, admin, owner by default).
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import Employee
from shared.config.logging import audit_manager_override
from shared.config.settings import settings
from shared.security.pin import verify_pin
from shared.utils.exceptions import InvalidManagerPinError


class ManagerAuthorizer:
    """Verifies manager PINs against elevated-role accounts."""

    def __init__(self, db: Session):
        self._db = db

    def find_manager(self, pin: str) -> Employee | None:
        """Return the elevated-role employee owning `pin`, if any."""
        if not pin:
            return None

        candidates = self._db.scalars(
            select(Employee)
            .where(
                Employee.role.in_(settings.manager_role_set),
                Employee.is_active.is_(True),
                Employee.pin_hash.is_not(None),
            )
            .order_by(Employee.id)
        ).all()

        for employee in candidates:
            if verify_pin(pin, employee.pin_hash):
                return employee
        return None

    def verify(self, pin: str) -> bool:
        return self.find_manager(pin) is not None

    def require(self, pin: str, action: str, order_id: str) -> Employee:
        """
        Return the authorizing manager or raise InvalidManagerPinError.

        Every attempt lands in the security audit log.
        """
        manager = self.find_manager(pin)
        if manager is None:
            audit_manager_override(action, order_id, success=False, reason="invalid_pin")
            raise InvalidManagerPinError(f"{action.lower()} order", order_id=order_id)

        audit_manager_override(action, order_id, success=True, employee_id=manager.id)
        return manager
