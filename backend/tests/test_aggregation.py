# tests/test_aggregation.py
# 汇总规则测试

import itertools

from app.approval import ApprovalState, DecisionRecord, DecisionStatus, RoleKey, recompute


STATUSES = list(DecisionStatus)


def _records(assignment):
    return {role: DecisionRecord(status=status) for role, status in assignment.items()}


def _expected(statuses):
    if DecisionStatus.REJECTED in statuses:
        return DecisionStatus.REJECTED
    if statuses and all(s == DecisionStatus.APPROVED for s in statuses):
        return DecisionStatus.APPROVED
    return DecisionStatus.PENDING


class TestRecompute:
    """recompute() 纯函数"""

    def test_every_combination_matches_rule(self):
        """三个必需席位 + 一个非必需席位的所有状态组合"""
        required = (RoleKey.TPO, RoleKey.DEAN, RoleKey.DIRECTOR)
        extra = RoleKey.CSE_HOD

        for combo in itertools.product(STATUSES, repeat=4):
            assignment = dict(zip(required + (extra,), combo))
            result = recompute(_records(assignment), required)
            assert result == _expected(list(combo[:3]))

    def test_roles_outside_required_are_ignored(self):
        records = _records({
            RoleKey.TPO: DecisionStatus.APPROVED,
            RoleKey.DEAN: DecisionStatus.APPROVED,
            RoleKey.CSE_HOD: DecisionStatus.REJECTED,
        })
        assert recompute(records, [RoleKey.TPO, RoleKey.DEAN]) == DecisionStatus.APPROVED

    def test_missing_record_counts_as_pending(self):
        records = _records({RoleKey.TPO: DecisionStatus.APPROVED})
        assert recompute(records, [RoleKey.TPO, RoleKey.DEAN]) == DecisionStatus.PENDING

    def test_empty_required_is_pending(self):
        assert recompute({}, []) == DecisionStatus.PENDING


class TestRejectionDominance:
    """任一拒绝即拒绝"""

    def test_later_approvals_cannot_override_rejection(self):
        required = tuple(RoleKey)
        state = ApprovalState.initial(required)
        state = state.with_decision(
            RoleKey.DEAN, DecisionRecord(status=DecisionStatus.REJECTED, comment="incomplete")
        )
        for role in required:
            if role == RoleKey.DEAN:
                continue
            state = state.with_decision(role, DecisionRecord(status=DecisionStatus.APPROVED))
            assert state.overall_status == DecisionStatus.REJECTED


class TestAllApprovedConvergence:

    def test_approved_once_every_role_approves(self):
        required = (RoleKey.TPO, RoleKey.DEAN)
        state = ApprovalState.initial(required)
        for role in required:
            state = state.with_decision(role, DecisionRecord(status=DecisionStatus.APPROVED))
        assert state.overall_status == DecisionStatus.APPROVED

    def test_one_role_back_to_pending_or_rejected(self):
        required = (RoleKey.TPO, RoleKey.DEAN)
        approved = ApprovalState.initial(required)
        for role in required:
            approved = approved.with_decision(role, DecisionRecord(status=DecisionStatus.APPROVED))

        back_to_pending = approved.with_decision(RoleKey.TPO, DecisionRecord())
        assert back_to_pending.overall_status == DecisionStatus.PENDING

        rejected = approved.with_decision(
            RoleKey.TPO, DecisionRecord(status=DecisionStatus.REJECTED, comment="no")
        )
        assert rejected.overall_status == DecisionStatus.REJECTED

    def test_arrival_order_does_not_matter(self):
        required = (RoleKey.TPO, RoleKey.DEAN, RoleKey.DIRECTOR)
        decisions = {
            RoleKey.TPO: DecisionRecord(status=DecisionStatus.APPROVED),
            RoleKey.DEAN: DecisionRecord(status=DecisionStatus.REJECTED, comment="budget"),
            RoleKey.DIRECTOR: DecisionRecord(status=DecisionStatus.APPROVED),
        }
        snapshots = []
        for order in itertools.permutations(required):
            state = ApprovalState.initial(required)
            for role in order:
                state = state.with_decision(role, decisions[role])
            snapshots.append(state.to_dict())
        assert all(snapshot == snapshots[0] for snapshot in snapshots)
        assert snapshots[0]["overall_status"] == "rejected"
