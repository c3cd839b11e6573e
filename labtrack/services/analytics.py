# labtrack/services/analytics.py

from collections import defaultdict
from labtrack.models import Asset, AssetIssue
from labtrack.models.issue import OPEN

REPAIR_COST_PER_ISSUE = 500
REPLACEMENT_COST_PER_OPEN_ISSUE = 1000


def _lab_label(lab):
    return lab.lab_identifier if lab else 'Unknown'


def analyze_assets(assets=None):
    """Counts and cost of assets, overall and per lab and type.

    Args:
        assets: Asset rows to summarise, defaults to the whole register

    Returns:
        dict: totals plus by_lab, by_type, cost_by_lab and cost_by_type maps
    """
    if assets is None:
        assets = Asset.query.all()

    by_lab = defaultdict(int)
    by_type = defaultdict(int)
    cost_by_lab = defaultdict(float)
    cost_by_type = defaultdict(float)
    total_cost = 0.0
    approved = 0

    for asset in assets:
        lab = _lab_label(asset.lab)
        asset_type = asset.type.name if asset.type else 'Unknown'
        cost = float(asset.total_amount or 0)
        by_lab[lab] += 1
        by_type[asset_type] += 1
        cost_by_lab[lab] += cost
        cost_by_type[asset_type] += cost
        total_cost += cost
        if asset.approved:
            approved += 1

    return {
        'total_assets': len(assets),
        'total_cost': round(total_cost, 2),
        'approved_assets': approved,
        'pending_assets': len(assets) - approved,
        'by_lab': dict(by_lab),
        'by_type': dict(by_type),
        'cost_by_lab': {k: round(v, 2) for k, v in cost_by_lab.items()},
        'cost_by_type': {k: round(v, 2) for k, v in cost_by_type.items()},
    }


def analyze_issues(issues=None):
    """Issue counts, resolution rate and a rough cost exposure."""
    if issues is None:
        issues = AssetIssue.query.all()

    total = len(issues)
    open_issues = sum(1 for issue in issues if issue.status == OPEN)
    resolved = total - open_issues

    by_lab = defaultdict(int)
    for issue in issues:
        by_lab[_lab_label(issue.asset.lab if issue.asset else None)] += 1

    repair_cost = total * REPAIR_COST_PER_ISSUE
    replacement_cost = open_issues * REPLACEMENT_COST_PER_OPEN_ISSUE
    return {
        'total_issues': total,
        'open_issues': open_issues,
        'resolved_issues': resolved,
        'issues_by_lab': dict(by_lab),
        'issues_by_status': {'open': open_issues, 'resolved': resolved},
        'resolution_rate': round(resolved * 100.0 / total, 2) if total else 0.0,
        'cost_analysis': {
            'estimated_repair_cost': repair_cost,
            'replacement_cost': replacement_cost,
            'total_potential_cost': repair_cost + replacement_cost,
        },
    }
