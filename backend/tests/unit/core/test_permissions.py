"""
Unit Tests for role permissions
"""
from sopmanager.core.permissions import Permission, get_role_permissions, has_permission
from sopmanager.models import UserRole


class TestRolePermissions:

    def test_admin_has_everything(self):
        assert get_role_permissions(UserRole.ADMIN) == frozenset(Permission)

    def test_staff_is_read_only(self):
        perms = get_role_permissions(UserRole.STAFF)

        assert Permission.SOP_READ in perms
        assert Permission.TRAINING_READ in perms
        assert Permission.ASSIGNMENT_UPDATE_OWN in perms
        assert Permission.SOP_WRITE not in perms
        assert Permission.ANALYTICS_READ not in perms

    def test_manager_can_manage_content(self):
        for permission in (Permission.SOP_WRITE, Permission.SOP_APPROVE, Permission.TRAINING_WRITE,
                           Permission.ANALYTICS_READ, Permission.AUDIT_READ, Permission.TRANSLATION_WRITE):
            assert has_permission(UserRole.MANAGER, permission)

    def test_manager_cannot_administer(self):
        for permission in (Permission.USER_WRITE, Permission.TRANSLATION_PUBLISH,
                           Permission.RESTAURANT_WRITE, Permission.SYSTEM_ADMIN):
            assert not has_permission(UserRole.MANAGER, permission)

    def test_role_given_as_string(self):
        assert has_permission('manager', Permission.SOP_WRITE)
        assert not has_permission('staff', Permission.SOP_WRITE)

    def test_unknown_role_has_nothing(self):
        assert get_role_permissions('owner') == frozenset()
