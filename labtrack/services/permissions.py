# labtrack/services/permissions.py
"""Role rules for labs, assets, transfers and issues.

`check_lab_permission` answers lab-scoped questions; the asset helpers
encode the row-level rules of the asset register.
"""

from dataclasses import dataclass

from labtrack.errors import PermissionDeniedError

VIEW = 'view'
CREATE = 'create'
UPDATE = 'update'
DELETE = 'delete'
MANAGE_STAFF = 'manage_staff'
MANAGE_ISSUES = 'manage_issues'
LAB_ACTIONS = (VIEW, CREATE, UPDATE, DELETE, MANAGE_STAFF, MANAGE_ISSUES)

_ASSISTANT_ACTIONS = {VIEW, CREATE, UPDATE, MANAGE_ISSUES}


@dataclass
class LabPermission:
    can_create: bool
    can_update: bool
    can_delete: bool
    can_manage_staff: bool
    can_manage_issues: bool
    can_view_assets: bool


def check_lab_permission(user, lab_id, action):
    """Whether `user` may perform `action` on the lab `lab_id`."""
    if action not in LAB_ACTIONS:
        raise ValueError(f"Unknown lab action: {action}")
    if user is None or not user.is_active:
        return False
    if action == VIEW:
        return True
    if user.is_hod():
        return True
    if not user.belongs_to_lab(lab_id):
        return False
    if user.is_lab_incharge():
        return True
    return action in _ASSISTANT_ACTIONS


def get_lab_permissions(user, lab_id):
    return LabPermission(
        can_create=check_lab_permission(user, lab_id, CREATE),
        can_update=check_lab_permission(user, lab_id, UPDATE),
        can_delete=check_lab_permission(user, lab_id, DELETE),
        can_manage_staff=check_lab_permission(user, lab_id, MANAGE_STAFF),
        can_manage_issues=check_lab_permission(user, lab_id, MANAGE_ISSUES),
        can_view_assets=check_lab_permission(user, lab_id, VIEW),
    )


def require(allowed, message):
    if not allowed:
        raise PermissionDeniedError(message)


def can_create_asset(user, lab_id):
    return user is not None and user.belongs_to_lab(lab_id)


def can_edit_asset(user, asset):
    return (
        user is not None
        and user.is_lab_assistant()
        and asset.created_by == user.id
        and user.belongs_to_lab(asset.allocated_lab)
    )


def can_approve_asset(user, asset):
    if user is None or asset.approved:
        return False
    if user.is_hod():
        return not asset.approved_by
    if user.is_lab_incharge():
        return (
            not asset.approved_by_lab_incharge
            and user.belongs_to_lab(asset.allocated_lab)
        )
    return False


def can_delete_asset(user, asset):
    if user is None:
        return False
    if user.is_hod():
        return True
    if user.is_lab_incharge():
        return (
            not asset.approved_by
            and not asset.approved
            and user.belongs_to_lab(asset.allocated_lab)
        )
    return (
        user.is_lab_assistant()
        and asset.created_by == user.id
        and not asset.approved_by_lab_incharge
        and not asset.approved_by
        and not asset.approved
        and user.belongs_to_lab(asset.allocated_lab)
    )


def can_initiate_transfer(user, asset):
    return (
        user is not None
        and user.is_lab_assistant()
        and user.belongs_to_lab(asset.allocated_lab)
    )


def can_receive_transfer(user, transfer):
    return (
        user is not None
        and user.is_lab_incharge()
        and transfer.is_pending
        and user.belongs_to_lab(transfer.to_lab)
    )


def can_manage_asset_types(user):
    return user is not None and user.is_hod()


def can_manage_deleted_assets(user):
    return user is not None and user.is_hod()


def can_manage_users(user):
    return user is not None and user.is_hod()
