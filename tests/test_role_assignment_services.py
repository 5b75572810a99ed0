import uuid

from app.models.records import Principal
from app.services.permissions import ALL_PERMISSIONS, Permission
from app.services.role_assignment import RoleAssignment, can_act_on


def _principal(mask, is_blocked=False, is_active=True, area_id=None):
    return Principal(
        id=uuid.uuid4(),
        first_name="Ana",
        last_name="Quispe",
        email="ana@example.com",
        area_id=area_id or uuid.uuid4(),
        permission_mask=mask,
        is_blocked=is_blocked,
        is_active=is_active,
    )


class TestResolve:
    def test_resolves_fields(self) -> None:
        area_id = uuid.uuid4()
        principal = _principal(Permission.DERIVE, area_id=area_id)
        assignment = RoleAssignment.resolve(principal)
        assert assignment.principal_id == principal.id
        assert assignment.area_id == area_id
        assert assignment.permission_mask == Permission.DERIVE
        assert assignment.is_blocked is False

    def test_inactive_principal_is_blocked(self) -> None:
        assignment = RoleAssignment.resolve(_principal(255, is_active=False))
        assert assignment.is_blocked is True


class TestCanActOn:
    def test_holds_bit(self) -> None:
        assignment = RoleAssignment.resolve(_principal(Permission.DERIVE))
        assert assignment.can_act_on(Permission.DERIVE)
        assert not assignment.can_act_on(Permission.EDIT)

    def test_blocked_denies_everything_even_with_administer(self) -> None:
        assignment = RoleAssignment.resolve(_principal(ALL_PERMISSIONS, is_blocked=True))
        for member in Permission:
            assert not assignment.can_act_on(member)

    def test_administer_override(self) -> None:
        assignment = RoleAssignment.resolve(_principal(Permission.ADMINISTER))
        assert assignment.can_act_on(Permission.AUDIT)
        assert assignment.can_act_on(Permission.DERIVE)

    def test_administer_override_disabled(self) -> None:
        assignment = RoleAssignment.resolve(_principal(Permission.ADMINISTER))
        assert not assignment.can_act_on(Permission.AUDIT, administer_override=False)
        assert assignment.can_act_on(Permission.ADMINISTER, administer_override=False)

    def test_module_helper(self) -> None:
        assert can_act_on(_principal(Permission.VIEW), Permission.VIEW)
        assert not can_act_on(_principal(Permission.VIEW), Permission.CREATE)


class TestHoldsArea:
    def test_same_area(self) -> None:
        area_id = uuid.uuid4()
        assignment = RoleAssignment.resolve(_principal(16, area_id=area_id))
        assert assignment.holds_area(area_id)
        assert not assignment.holds_area(uuid.uuid4())
