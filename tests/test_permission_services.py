import pytest

from app.services.permissions import (
    ALL_PERMISSIONS,
    ROLE_PRESETS,
    Permission,
    combine,
    has_permission,
    permission_names,
)


class TestPermissionBits:
    def test_bit_values_are_stable(self) -> None:
        assert Permission.CREATE == 1
        assert Permission.EDIT == 2
        assert Permission.DELETE == 4
        assert Permission.VIEW == 8
        assert Permission.DERIVE == 16
        assert Permission.AUDIT == 32
        assert Permission.EXPORT == 64
        assert Permission.ADMINISTER == 128

    def test_block_is_alias_of_administer(self) -> None:
        assert Permission.BLOCK is Permission.ADMINISTER

    def test_all_permissions_is_full_byte(self) -> None:
        assert int(ALL_PERMISSIONS) == 255


class TestHasPermission:
    def test_single_bit(self) -> None:
        assert has_permission(Permission.DERIVE | Permission.VIEW, Permission.DERIVE)
        assert not has_permission(Permission.VIEW, Permission.DERIVE)

    def test_plain_int_mask(self) -> None:
        assert has_permission(91, Permission.CREATE)
        assert not has_permission(91, Permission.AUDIT)

    def test_combined_capability_requires_every_bit(self) -> None:
        wanted = Permission.EDIT | Permission.DERIVE
        assert has_permission(Permission.EDIT | Permission.DERIVE, wanted)
        assert not has_permission(Permission.EDIT, wanted)

    def test_administer_does_not_imply_other_bits(self) -> None:
        assert not has_permission(Permission.ADMINISTER, Permission.CREATE)

    def test_zero_mask(self) -> None:
        for member in Permission:
            assert not has_permission(0, member)

    def test_rejects_unknown_capability(self) -> None:
        with pytest.raises(TypeError):
            has_permission(255, 16)


class TestRolePresets:
    def test_preset_values(self) -> None:
        assert int(ROLE_PRESETS["admin"]) == 255
        assert int(ROLE_PRESETS["mesa_partes"]) == 91
        assert int(ROLE_PRESETS["area_responsable"]) == 91
        assert int(ROLE_PRESETS["auditor"]) == 104

    def test_auditor_cannot_derive(self) -> None:
        assert not has_permission(ROLE_PRESETS["auditor"], Permission.DERIVE)
        assert has_permission(ROLE_PRESETS["auditor"], Permission.AUDIT)


class TestHelpers:
    def test_combine(self) -> None:
        assert combine(Permission.CREATE, Permission.VIEW) == 9
        assert combine() == 0

    def test_permission_names_skips_alias(self) -> None:
        names = permission_names(255)
        assert "BLOCK" not in names
        assert "ADMINISTER" in names
        assert len(names) == 8

    def test_permission_names_sorted(self) -> None:
        assert permission_names(104) == ["AUDIT", "EXPORT", "VIEW"]
