import pytest
from decimal import Decimal
from conftest import make_asset_payload
from labtrack.errors import PermissionDeniedError, WorkflowError
from labtrack.models import ActivityLog, AssetIssue, LabIssue
from labtrack.services import issues as issue_service
from labtrack.services.assets import create_asset


@pytest.fixture
def asset(users, ids):
    return create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_a)


def test_report_asset_issue(users, asset):
    issue = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'Screen flickers', 'cost_required': '1200'},
        users.assistant_a
    )

    assert issue.status == 'open'
    assert issue.reported_by == users.assistant_a.id
    assert issue.cost_required == Decimal('1200.00')
    assert issue.lab_id == asset.allocated_lab
    assert ActivityLog.query.filter_by(entity_id=issue.id, action_type='report').count() == 1


def test_report_asset_issue_rules(users, asset):
    with pytest.raises(PermissionDeniedError):
        issue_service.report_asset_issue(
            asset.id, {'issue_description': 'Broken'}, users.assistant_b
        )
    with pytest.raises(WorkflowError):
        issue_service.report_asset_issue(asset.id, {'issue_description': '  '}, users.assistant_a)
    with pytest.raises(WorkflowError):
        issue_service.report_asset_issue(
            asset.id, {'issue_description': 'Broken', 'cost_required': '-5'}, users.assistant_a
        )
    assert AssetIssue.query.count() == 0


def test_asset_issue_lifecycle(users, asset):
    issue = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'Fan noise'}, users.assistant_a
    )
    issue_service.update_asset_issue(issue.id, {'status': 'in_progress'}, users.incharge_a)
    resolved = issue_service.resolve_asset_issue(
        issue.id, users.incharge_a, remark='Fan replaced', cost_required='800'
    )

    assert resolved.status == 'resolved'
    assert resolved.resolved_by == users.incharge_a.id
    assert resolved.resolved_at is not None
    assert resolved.remark == 'Fan replaced'
    assert resolved.cost_required == Decimal('800.00')
    assert ActivityLog.query.filter_by(entity_id=issue.id, action_type='resolve').count() == 1

    with pytest.raises(WorkflowError):
        issue_service.update_asset_issue(issue.id, {'status': 'open'}, users.incharge_a)
    assert issue_service.get_asset_issue(issue.id).status == 'resolved'


def test_delete_asset_issue(users, asset):
    issue = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'Dead pixel'}, users.assistant_a
    )
    with pytest.raises(PermissionDeniedError):
        issue_service.delete_asset_issue(issue.id, users.assistant_a)
    issue_service.delete_asset_issue(issue.id, users.incharge_a)
    assert AssetIssue.query.count() == 0


def test_list_asset_issues_open_first(users, ids, asset):
    first = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'Keyboard keys stuck'}, users.assistant_a
    )
    second = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'Mouse missing'}, users.assistant_a
    )
    issue_service.resolve_asset_issue(second.id, users.incharge_a)
    third = issue_service.report_asset_issue(
        asset.id, {'issue_description': 'No network'}, users.assistant_a
    )

    def listed(**filters):
        return [issue.id for issue in issue_service.list_asset_issues(filters)]

    ordered = listed()
    assert ordered[-1] == second.id
    assert set(ordered[:2]) == {first.id, third.id}
    assert listed(status='resolved') == [second.id]
    assert listed(search='network') == [third.id]
    assert set(listed(lab=ids.lab_a)) == {first.id, second.id, third.id}
    assert listed(lab=ids.lab_b) == []


def test_lab_issue_crud(users, ids):
    issue = issue_service.create_lab_issue({
        'lab_id': ids.lab_a,
        'title': 'Projector bulb',
        'description': 'Projector will not turn on',
        'priority': 'high',
        'assigned_to': ''
    }, users.assistant_a)
    assert issue.status == 'open'
    assert issue.assigned_to is None
    assert issue.priority == 'high'

    updated = issue_service.update_lab_issue(
        issue.id, {'status': 'resolved', 'assigned_to': users.incharge_a.id}, users.incharge_a
    )
    assert updated.status == 'resolved'
    assert updated.assigned_to == users.incharge_a.id
    assert ActivityLog.query.filter_by(entity_id=issue.id, action_type='resolve').count() == 1

    assert [i.id for i in issue_service.list_lab_issues({'lab_id': ids.lab_a})] == [issue.id]
    assert issue_service.list_lab_issues({'lab_id': ids.lab_b}) == []

    with pytest.raises(PermissionDeniedError):
        issue_service.delete_lab_issue(issue.id, users.assistant_a)
    issue_service.delete_lab_issue(issue.id, users.hod)
    assert LabIssue.query.count() == 0


def test_lab_issue_rules(users, ids):
    with pytest.raises(WorkflowError):
        issue_service.create_lab_issue(
            {'lab_id': ids.lab_a, 'title': 'No description'}, users.assistant_a
        )
    with pytest.raises(PermissionDeniedError):
        issue_service.create_lab_issue(
            {'lab_id': ids.lab_a, 'title': 'T', 'description': 'D'}, users.assistant_b
        )
