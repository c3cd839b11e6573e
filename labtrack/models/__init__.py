from labtrack.models.user import User
from labtrack.models.lab import Lab
from labtrack.models.asset_type import AssetType
from labtrack.models.asset import Asset
from labtrack.models.deleted_asset import DeletedAsset
from labtrack.models.asset_transfer import AssetTransfer
from labtrack.models.issue import LabIssue, AssetIssue
from labtrack.models.activity_log import ActivityLog
from labtrack.models.notification import Notification

__all__ = [
    'User',
    'Lab',
    'AssetType',
    'Asset',
    'DeletedAsset',
    'AssetTransfer',
    'LabIssue',
    'AssetIssue',
    'ActivityLog',
    'Notification',
]
